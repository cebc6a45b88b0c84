"""
Job post data model.

Job posts are owned by the CRUD layer. Hydrated reads also carry the
resolved company name and the ids of interns who already applied.
"""

from typing import Any, Optional

from pydantic import Field, field_validator

from src.utils.constants import UNKNOWN_COMPANY

from .base import BaseDocument, _none_to_list


class JobPost(BaseDocument):
    """A job post as stored in the ``job_posts`` collection."""

    title: str = ""
    description: Optional[str] = None
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)

    # Display fields passed through to match results
    location: Optional[str] = None
    salary: Optional[str] = None
    work_setup: Optional[str] = None
    work_schedule: Optional[str] = None
    company_id: Optional[str] = None

    # Resolved during hydration
    company: str = UNKNOWN_COMPANY
    applicant_ids: list[str] = Field(default_factory=list)

    @field_validator("requirements", "responsibilities", "applicant_ids", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> list[str]:
        """Null list fields become empty lists."""
        return _none_to_list(v)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("company", mode="before")
    @classmethod
    def default_company(cls, v: Any) -> str:
        return v or UNKNOWN_COMPANY

    @field_validator("company_id", "salary", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)
