"""
Builds the semantic document that gets embedded for an entity.

Pure functions over either the pydantic entity models or plain mappings.
List fields that are null or absent are treated as empty, and nothing is
truncated here; the embedding model applies its own length limit.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from src.utils.constants import MATERIAL_FIELDS, EntityKind


def _field(entity: Any, name: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _joined(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Iterable):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value)


def normalize_intern(profile: Any) -> str:
    """``Skills: a, b\\nSummary: ...``"""
    return f"Skills: {_joined(_field(profile, 'skills'))}\nSummary: {_text(_field(profile, 'summary'))}"


def normalize_job(job: Any) -> str:
    """Title, description, requirements and responsibilities on four lines."""
    return "\n".join([
        _text(_field(job, "title")),
        _text(_field(job, "description")),
        f"Requirements: {_joined(_field(job, 'requirements'))}",
        f"Responsibilities: {_joined(_field(job, 'responsibilities'))}",
    ])


def normalize(entity: Any, kind: EntityKind | str) -> str:
    """
    Build the semantic document for an entity.

    Args:
        entity: An ``InternProfile``/``JobPost`` or an equivalent mapping.
        kind: Which kind of entity it is.

    Returns:
        The document string to embed.
    """
    if EntityKind(kind) is EntityKind.INTERN:
        return normalize_intern(entity)
    return normalize_job(entity)


def touches_material_fields(kind: EntityKind | str, changed_fields: Iterable[str]) -> bool:
    """Whether an update to ``changed_fields`` changes the document."""
    return bool(MATERIAL_FIELDS[EntityKind(kind)].intersection(changed_fields))
