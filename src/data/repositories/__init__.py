"""
Data access layer for the CRUD-owned collections.

Repositories are read-only from the matching pipeline's point of view.
"""

from .base import BaseRepository
from .job_repository import JobPostRepository
from .profile_repository import ProfileRepository

__all__ = [
    "BaseRepository",
    "JobPostRepository",
    "ProfileRepository",
]
