"""
Base repository class providing read access to CRUD-layer collections.

The matching pipeline never writes profiles or job posts, so only the
asynchronous read operations are implemented here.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from src.core.exceptions import StoreError
from src.data.database import DatabaseManager, get_database_manager
from src.data.models.base import BaseDocument
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Type variable for document models
T = TypeVar("T", bound=BaseDocument)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common read operations.

    Subclasses must define the collection name and model class.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the MongoDB collection."""
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Pydantic model class for this repository."""
        pass

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        """Initialize repository with database connection."""
        self._db_manager = db_manager or get_database_manager()

    # -------------------------------------------------------------------------
    # Collection Access
    # -------------------------------------------------------------------------

    def _get_async_collection(self, name: Optional[str] = None) -> AsyncIOMotorCollection:
        """Get asynchronous collection instance."""
        return self._db_manager.get_async_collection(name or self.collection_name)

    # -------------------------------------------------------------------------
    # Document Conversion
    # -------------------------------------------------------------------------

    def _to_model(self, document: Optional[dict[str, Any]]) -> Optional[T]:
        """Convert MongoDB document to Pydantic model."""
        if document is None:
            return None
        return self.model_class.model_validate(document)

    def _to_models(self, documents: list[dict[str, Any]]) -> list[T]:
        """Convert list of MongoDB documents to Pydantic models."""
        return [self._to_model(doc) for doc in documents if doc is not None]

    @staticmethod
    def _id_candidates(id_value: str) -> list[Any]:
        """Ids may be stored as strings or as ObjectIds."""
        candidates: list[Any] = [id_value]
        if ObjectId.is_valid(id_value):
            candidates.append(ObjectId(id_value))
        return candidates

    def _ids_filter(self, ids: list[str]) -> dict[str, Any]:
        values: list[Any] = []
        for id_value in ids:
            values.extend(self._id_candidates(id_value))
        return {"_id": {"$in": values}}

    # -------------------------------------------------------------------------
    # Asynchronous Read Operations
    # -------------------------------------------------------------------------

    async def get_by_id_async(self, id_value: str) -> Optional[T]:
        """Get a document by its ID asynchronously."""
        try:
            document = await self._get_async_collection().find_one(
                {"_id": {"$in": self._id_candidates(id_value)}}
            )
        except PyMongoError as e:
            raise StoreError(f"Failed to read {self.collection_name}/{id_value}: {e}") from e
        return self._to_model(document)

    async def get_by_ids_async(self, ids: list[str]) -> list[T]:
        """Get every document whose ID is in ``ids`` with one query."""
        if not ids:
            return []
        try:
            cursor = self._get_async_collection().find(self._ids_filter(ids))
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(f"Failed to read {self.collection_name}: {e}") from e
        return self._to_models(documents)

    async def list_ids_async(self) -> list[str]:
        """Return the ID of every document in the collection."""
        try:
            cursor = self._get_async_collection().find({}, {"_id": 1})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(f"Failed to list {self.collection_name}: {e}") from e
        return [str(doc["_id"]) for doc in documents]
