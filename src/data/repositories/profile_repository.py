"""
Repository for intern profiles.
"""

from src.data.models import InternProfile
from src.utils.config import get_settings

from .base import BaseRepository


class ProfileRepository(BaseRepository[InternProfile]):
    """Read access to the ``profiles`` collection."""

    @property
    def collection_name(self) -> str:
        return get_settings().database.profiles_collection

    @property
    def model_class(self) -> type[InternProfile]:
        return InternProfile
