"""
Repository for job posts.

Hydration reads resolve the company name and the applicant ids in the
same aggregation so a batch of matches costs a single round trip.
"""

from typing import Any

from pymongo.errors import PyMongoError

from src.core.exceptions import StoreError
from src.data.models import JobPost
from src.utils.config import get_settings
from src.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)


def _string_lookup(
    from_collection: str,
    local_field: str,
    foreign_field: str,
    keep: str,
    as_field: str,
) -> dict[str, Any]:
    """
    ``$lookup`` that compares both sides as strings.

    Ids may be stored as ObjectIds in one collection and as strings in
    another; a plain ``localField``/``foreignField`` join would miss them.
    """
    return {
        "$lookup": {
            "from": from_collection,
            "let": {"key": {"$toString": f"${local_field}"}},
            "pipeline": [
                {"$match": {"$expr": {"$eq": [{"$toString": f"${foreign_field}"}, "$$key"]}}},
                {"$project": {keep: 1}},
            ],
            "as": as_field,
        }
    }


class JobPostRepository(BaseRepository[JobPost]):
    """Read access to the ``job_posts`` collection."""

    @property
    def collection_name(self) -> str:
        return get_settings().database.jobs_collection

    @property
    def model_class(self) -> type[JobPost]:
        return JobPost

    def _hydration_pipeline(self, ids: list[str]) -> list[dict[str, Any]]:
        """Build the ``$match`` + ``$lookup`` pipeline for hydrated reads."""
        db_settings = get_settings().database
        return [
            {"$match": self._ids_filter(ids)},
            _string_lookup(
                db_settings.companies_collection,
                local_field="company_id",
                foreign_field="_id",
                keep="name",
                as_field="_companies",
            ),
            _string_lookup(
                db_settings.applications_collection,
                local_field="_id",
                foreign_field="job_id",
                keep="intern_id",
                as_field="_applications",
            ),
            {
                "$addFields": {
                    "company": {"$first": "$_companies.name"},
                    "applicant_ids": "$_applications.intern_id",
                }
            },
            {"$project": {"_companies": 0, "_applications": 0}},
        ]

    async def get_hydrated_async(self, ids: list[str]) -> list[JobPost]:
        """Fetch full job posts with company name and applicants resolved."""
        if not ids:
            return []
        try:
            cursor = self._get_async_collection().aggregate(self._hydration_pipeline(ids))
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(f"Failed to hydrate job posts: {e}") from e

        logger.debug(f"Hydrated {len(documents)} of {len(ids)} job posts")
        return self._to_models(documents)
