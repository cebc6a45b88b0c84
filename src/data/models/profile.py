"""
Intern profile data model.

Profiles are owned by the CRUD layer; the matching pipeline only reads
the fields that feed the semantic document plus a few display fields.
"""

from typing import Any, Optional

from pydantic import Field, field_validator

from .base import BaseDocument, _none_to_list


class InternProfile(BaseDocument):
    """An intern's profile as stored in the ``profiles`` collection."""

    full_name: Optional[str] = None
    email: Optional[str] = None
    course: Optional[str] = None
    summary: Optional[str] = None
    skills: list[str] = Field(default_factory=list)

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: Any) -> list[str]:
        """Null skills become an empty list."""
        return _none_to_list(v)
