"""
Base model classes for Internship Matcher data models.

Provides common fields and functionality shared across all models.
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseDocument(BaseModel):
    """
    Base document model for records owned by the CRUD layer.

    Ids are opaque strings shared with the relational record the entity
    originates from; MongoDB ObjectIds are accepted and stringified.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        extra="ignore",
    )

    id: str = Field(alias="_id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        """Stringify ObjectIds and UUIDs."""
        if isinstance(value, ObjectId):
            return str(value)
        if value is None:
            raise ValueError("Document id is required")
        return str(value)

    def model_dump_public(self) -> dict[str, Any]:
        """Convert model to a JSON-ready dictionary keyed by ``id``."""
        return self.model_dump(mode="json", by_alias=False)


class EmbeddedModel(BaseModel):
    """
    Base model for embedded documents (subdocuments).

    Use this for models that are embedded within other documents
    rather than stored in their own collection.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )


def _none_to_list(value: Any) -> list[str]:
    """Treat null/absent list fields as empty lists."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item is not None]
