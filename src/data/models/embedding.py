"""
Embedding record model.

One record per entity and kind. ``embedding`` is always the vector the
current model produced from ``text_snapshot``; the two are written together.
"""

from datetime import datetime, timezone

from pydantic import Field

from .base import EmbeddedModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmbeddingRecord(EmbeddedModel):
    """A stored ``(entity_id, text_snapshot, embedding)`` row."""

    entity_id: str
    text_snapshot: str
    embedding: list[float]
    model_name: str | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def dimension(self) -> int:
        return len(self.embedding)
