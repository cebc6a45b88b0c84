"""
Match result models.

Derived per query and never persisted. Ordering is by descending
similarity with the entity id as a deterministic secondary key.
"""

from typing import Any

from pydantic import Field

from .job import JobPost
from .profile import InternProfile


class MatchResult(JobPost):
    """A job post recommended to an intern, with its similarity score."""

    similarity: float
    has_applied: bool = False

    # Other interns' ids never leave the service
    applicant_ids: list[str] = Field(default_factory=list, exclude=True)

    @classmethod
    def from_job(cls, job: JobPost, similarity: float, intern_id: str | None = None) -> "MatchResult":
        """Merge a hydrated job with its similarity score."""
        data: dict[str, Any] = job.model_dump()
        data["similarity"] = similarity
        data["has_applied"] = intern_id is not None and intern_id in job.applicant_ids
        return cls.model_validate(data)


class CandidateMatch(InternProfile):
    """An intern ranked against a job post."""

    similarity: float

    @classmethod
    def from_profile(cls, profile: InternProfile, similarity: float) -> "CandidateMatch":
        data: dict[str, Any] = profile.model_dump()
        data["similarity"] = similarity
        return cls.model_validate(data)


def sort_key(item: Any) -> tuple[float, str]:
    """Similarity descending, then id ascending."""
    return (-item.similarity, item.id)
