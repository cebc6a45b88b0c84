"""
Entity store collaborator.

The matching pipeline consumes profiles and job posts through this
narrow read interface. ``MongoEntityStore`` is the production
implementation; tests supply an in-memory one.
"""

from typing import Optional, Protocol, runtime_checkable

from src.data.database import DatabaseManager
from src.data.models import InternProfile, JobPost
from src.data.repositories import JobPostRepository, ProfileRepository
from src.utils.constants import EntityKind


@runtime_checkable
class EntityStore(Protocol):
    """Read-only access to the entities owned by the CRUD layer."""

    async def get_profile(self, intern_id: str) -> Optional[InternProfile]:
        ...

    async def get_job_post(self, job_id: str) -> Optional[JobPost]:
        ...

    async def get_job_posts_by_ids(self, job_ids: list[str]) -> list[JobPost]:
        """Batched, hydrated read (company name and applicants resolved)."""
        ...

    async def get_profiles_by_ids(self, intern_ids: list[str]) -> list[InternProfile]:
        ...

    async def list_ids(self, kind: EntityKind) -> list[str]:
        ...


class MongoEntityStore:
    """Entity store backed by the MongoDB collections of the CRUD layer."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.profiles = ProfileRepository(db_manager)
        self.jobs = JobPostRepository(db_manager)

    async def get_profile(self, intern_id: str) -> Optional[InternProfile]:
        return await self.profiles.get_by_id_async(intern_id)

    async def get_job_post(self, job_id: str) -> Optional[JobPost]:
        return await self.jobs.get_by_id_async(job_id)

    async def get_job_posts_by_ids(self, job_ids: list[str]) -> list[JobPost]:
        return await self.jobs.get_hydrated_async(job_ids)

    async def get_profiles_by_ids(self, intern_ids: list[str]) -> list[InternProfile]:
        return await self.profiles.get_by_ids_async(intern_ids)

    async def list_ids(self, kind: EntityKind) -> list[str]:
        if EntityKind(kind) is EntityKind.INTERN:
            return await self.profiles.list_ids_async()
        return await self.jobs.list_ids_async()
