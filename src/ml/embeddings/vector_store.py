"""
Vector store abstraction for storing and searching embeddings.

Each entity kind has its own collection holding one
``(entity_id, text_snapshot, embedding)`` row per entity. Supports an
in-memory numpy backend plus ChromaDB and FAISS.
"""

import json
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

import numpy as np

from src.core.exceptions import MatchingError, StoreError
from src.data.models import EmbeddingRecord
from src.utils.config import get_settings
from src.utils.constants import EntityKind
from src.utils.logger import get_logger

from .embedding_model import l2_normalize
from .semantic_similarity import SearchResult, cosine_similarities, rank_results

logger = get_logger(__name__)


class VectorStore(ABC):
    """
    Abstract base class for a single embedding collection.

    Implementations must replace the text snapshot and the vector of a
    row together; a reader never sees one without the other.
    """

    @abstractmethod
    def upsert(
        self,
        entity_id: str,
        text_snapshot: str,
        embedding: list[float],
        model_name: Optional[str] = None,
    ) -> None:
        """Insert or fully replace the row for ``entity_id``."""
        pass

    @abstractmethod
    def get(self, entity_id: str) -> Optional[EmbeddingRecord]:
        """Get the row for ``entity_id``, or None if it was never stored."""
        pass

    @abstractmethod
    def search(
        self,
        query_embedding: list[float],
        top_k: int = 10,
        min_similarity: Optional[float] = None,
    ) -> list[SearchResult]:
        """Search for the most similar stored embeddings."""
        pass

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Delete a row; returns whether it existed."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of embeddings in store."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all embeddings from store."""
        pass


def _as_vector(embedding: Any) -> np.ndarray:
    vector = np.asarray(embedding, dtype=np.float32).ravel()
    if vector.size == 0:
        raise StoreError("Refusing to store an empty embedding")
    if not np.all(np.isfinite(vector)):
        raise StoreError("Refusing to store an embedding with non-finite values")
    return vector


def _as_unit_vector(embedding: Any) -> np.ndarray:
    """Validated vector scaled to unit length, so inner product is cosine."""
    return l2_normalize(_as_vector(embedding))[0]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryVectorStore(VectorStore):
    """
    In-process vector store using brute-force numpy search.

    Vectors are stored at unit length so the dot product is cosine.
    Used for tests and single-process deployments without persistence.
    """

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._records: dict[str, EmbeddingRecord] = {}
        self._lock = threading.Lock()

    def _check_dimension(self, vector: np.ndarray) -> None:
        if self.dimension is None:
            self.dimension = vector.size
        elif vector.size != self.dimension:
            raise StoreError(
                f"Embedding dimension {vector.size} does not match store dimension {self.dimension}"
            )

    def upsert(
        self,
        entity_id: str,
        text_snapshot: str,
        embedding: list[float],
        model_name: Optional[str] = None,
    ) -> None:
        vector = _as_unit_vector(embedding)
        record = EmbeddingRecord(
            entity_id=entity_id,
            text_snapshot=text_snapshot,
            embedding=vector.tolist(),
            model_name=model_name,
            updated_at=_utcnow(),
        )
        with self._lock:
            self._check_dimension(vector)
            self._records[entity_id] = record

    def get(self, entity_id: str) -> Optional[EmbeddingRecord]:
        with self._lock:
            record = self._records.get(entity_id)
        return record.model_copy(deep=True) if record else None

    def search(
        self,
        query_embedding: list[float],
        top_k: int = 10,
        min_similarity: Optional[float] = None,
    ) -> list[SearchResult]:
        with self._lock:
            ids = list(self._records)
            if not ids:
                return []
            matrix = np.array([self._records[i].embedding for i in ids], dtype=np.float32)

        query = _as_unit_vector(query_embedding)
        if query.size != matrix.shape[1]:
            raise StoreError(
                f"Query dimension {query.size} does not match store dimension {matrix.shape[1]}"
            )

        scores = cosine_similarities(matrix, query)
        results = [SearchResult(id=i, similarity=float(s)) for i, s in zip(ids, scores)]
        return rank_results(results, k=top_k, min_similarity=min_similarity)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._records.pop(entity_id, None) is not None

    def count(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class ChromaVectorStore(VectorStore):
    """
    ChromaDB-based vector store implementation.

    Provides persistent storage; Chroma's native upsert replaces the
    document and the embedding of a row in one write.
    """

    def __init__(
        self,
        collection_name: str,
        persist_directory: Optional[Path] = None,
        client: Any = None,
    ):
        """
        Initialize ChromaDB vector store.

        Args:
            collection_name: Name of the collection to use.
            persist_directory: Directory for persistent storage.
            client: Optional pre-built Chroma client (e.g. an ephemeral one).
        """
        settings = get_settings()
        self.collection_name = collection_name
        self.persist_directory = persist_directory or settings.vector_store.persist_directory

        self._client = client
        self._collection = None
        self._initialized = False
        self._init_lock = threading.Lock()

    def _initialize(self) -> None:
        """Lazy initialization of ChromaDB client."""
        with self._init_lock:
            if self._initialized:
                return

            import chromadb
            from chromadb.config import Settings as ChromaSettings

            if self._client is None:
                self.persist_directory.mkdir(parents=True, exist_ok=True)
                logger.info(f"Initializing ChromaDB at: {self.persist_directory}")
                self._client = chromadb.PersistentClient(
                    path=str(self.persist_directory),
                    settings=ChromaSettings(
                        anonymized_telemetry=False,
                        allow_reset=True,
                    ),
                )

            self._collection = self._client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
            self._initialized = True
            logger.info(
                f"ChromaDB initialized with collection: {self.collection_name} "
                f"({self._collection.count()} documents)"
            )

    @property
    def collection(self):
        """Get the ChromaDB collection."""
        if not self._initialized:
            self._initialize()
        return self._collection

    def upsert(
        self,
        entity_id: str,
        text_snapshot: str,
        embedding: list[float],
        model_name: Optional[str] = None,
    ) -> None:
        vector = _as_vector(embedding)
        self.collection.upsert(
            ids=[entity_id],
            embeddings=[vector.tolist()],
            documents=[text_snapshot],
            metadatas=[{
                "model_name": model_name or "",
                "updated_at": _utcnow().isoformat(),
            }],
        )
        logger.debug(f"Upserted embedding {entity_id} into {self.collection_name}")

    def get(self, entity_id: str) -> Optional[EmbeddingRecord]:
        results = self.collection.get(
            ids=[entity_id],
            include=["embeddings", "documents", "metadatas"],
        )
        if not results["ids"]:
            return None

        embeddings = results.get("embeddings")
        documents = results.get("documents")
        metadatas = results.get("metadatas")
        metadata = (metadatas[0] if metadatas is not None else None) or {}

        record = EmbeddingRecord(
            entity_id=results["ids"][0],
            text_snapshot=documents[0] if documents is not None else "",
            embedding=np.asarray(embeddings[0], dtype=np.float32).tolist(),
            model_name=metadata.get("model_name") or None,
        )
        if metadata.get("updated_at"):
            record.updated_at = datetime.fromisoformat(metadata["updated_at"])
        return record

    def search(
        self,
        query_embedding: list[float],
        top_k: int = 10,
        min_similarity: Optional[float] = None,
    ) -> list[SearchResult]:
        total = self.collection.count()
        if total == 0:
            return []

        results = self.collection.query(
            query_embeddings=[_as_vector(query_embedding).tolist()],
            n_results=min(top_k, total),
            include=["distances"],
        )

        hits = []
        if results["ids"] and results["ids"][0]:
            distances = results["distances"][0]
            for doc_id, distance in zip(results["ids"][0], distances):
                # For cosine distance: similarity = 1 - distance
                hits.append(SearchResult(id=doc_id, similarity=1.0 - float(distance)))

        return rank_results(hits, k=top_k, min_similarity=min_similarity)

    def delete(self, entity_id: str) -> bool:
        existed = bool(self.collection.get(ids=[entity_id], include=["metadatas"])["ids"])
        if existed:
            self.collection.delete(ids=[entity_id])
            logger.debug(f"Deleted embedding {entity_id} from {self.collection_name}")
        return existed

    def count(self) -> int:
        return self.collection.count()

    def clear(self) -> None:
        """Delete and recreate the collection."""
        if self._client is not None and self._initialized:
            self._client.delete_collection(self.collection_name)
            self._collection = self._client.create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
            logger.info(f"Cleared collection: {self.collection_name}")


class FAISSVectorStore(VectorStore):
    """
    FAISS-based vector store implementation.

    Uses an ``IndexIDMap2`` over ``IndexFlatIP`` so rows can be removed
    and re-added under the same id. Vectors and queries are scaled to
    unit length, making inner product equal to cosine similarity.
    Documents live in a JSON sidecar.
    """

    def __init__(
        self,
        dimension: Optional[int] = None,
        persist_path: Optional[Path] = None,
    ):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Embedding dimension size.
            persist_path: Directory for saving/loading the index.
        """
        settings = get_settings()
        self.dimension = dimension or settings.ml.embedding_dimension
        self.persist_path = persist_path

        self._index = None
        self._int_ids: dict[str, int] = {}  # External ID -> FAISS ID
        self._documents: dict[str, str] = {}
        self._metadata: dict[str, dict[str, Any]] = {}
        self._next_id = 0
        self._lock = threading.RLock()

    def _initialize(self) -> None:
        """Lazy initialization of FAISS index."""
        import faiss

        logger.info(f"Initializing FAISS index with dimension: {self.dimension}")
        self._index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))

        if self.persist_path is not None and (self.persist_path / "index.faiss").exists():
            self._load()

        logger.info(f"FAISS index initialized ({self._index.ntotal} vectors)")

    @property
    def index(self):
        """Get the FAISS index."""
        with self._lock:
            if self._index is None:
                self._initialize()
            return self._index

    def _check_dimension(self, vector: np.ndarray) -> None:
        if vector.size != self.dimension:
            raise StoreError(
                f"Embedding dimension {vector.size} does not match store dimension {self.dimension}"
            )

    def upsert(
        self,
        entity_id: str,
        text_snapshot: str,
        embedding: list[float],
        model_name: Optional[str] = None,
    ) -> None:
        vector = _as_unit_vector(embedding)
        self._check_dimension(vector)

        with self._lock:
            index = self.index
            internal_id = self._int_ids.get(entity_id)
            if internal_id is None:
                internal_id = self._next_id
                self._next_id += 1
            else:
                index.remove_ids(np.array([internal_id], dtype=np.int64))

            index.add_with_ids(
                vector.reshape(1, -1),
                np.array([internal_id], dtype=np.int64),
            )
            self._int_ids[entity_id] = internal_id
            self._documents[entity_id] = text_snapshot
            self._metadata[entity_id] = {
                "model_name": model_name,
                "updated_at": _utcnow().isoformat(),
            }

        logger.debug(f"Upserted embedding {entity_id} into FAISS index")

    def get(self, entity_id: str) -> Optional[EmbeddingRecord]:
        with self._lock:
            internal_id = self._int_ids.get(entity_id)
            if internal_id is None:
                return None
            vector = self.index.reconstruct(internal_id)
            metadata = self._metadata.get(entity_id, {})
            return EmbeddingRecord(
                entity_id=entity_id,
                text_snapshot=self._documents[entity_id],
                embedding=np.asarray(vector, dtype=np.float32).tolist(),
                model_name=metadata.get("model_name"),
                updated_at=datetime.fromisoformat(metadata["updated_at"])
                if metadata.get("updated_at") else _utcnow(),
            )

    def search(
        self,
        query_embedding: list[float],
        top_k: int = 10,
        min_similarity: Optional[float] = None,
    ) -> list[SearchResult]:
        query = _as_unit_vector(query_embedding)
        self._check_dimension(query)

        with self._lock:
            index = self.index
            if index.ntotal == 0:
                return []
            external = {v: k for k, v in self._int_ids.items()}
            scores, ids = index.search(query.reshape(1, -1), min(top_k, index.ntotal))

        results = []
        for score, internal_id in zip(scores[0], ids[0]):
            if internal_id < 0 or int(internal_id) not in external:
                continue
            results.append(SearchResult(id=external[int(internal_id)], similarity=float(score)))

        return rank_results(results, k=top_k, min_similarity=min_similarity)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            internal_id = self._int_ids.pop(entity_id, None)
            if internal_id is None:
                return False
            self.index.remove_ids(np.array([internal_id], dtype=np.int64))
            self._documents.pop(entity_id, None)
            self._metadata.pop(entity_id, None)
            return True

    def count(self) -> int:
        return self.index.ntotal

    def clear(self) -> None:
        import faiss

        with self._lock:
            self._index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))
            self._int_ids.clear()
            self._documents.clear()
            self._metadata.clear()
            self._next_id = 0
        logger.info("Cleared FAISS index")

    def save(self) -> None:
        """Save index and sidecar to disk."""
        if self.persist_path is None:
            return

        import faiss

        with self._lock:
            self.persist_path.mkdir(parents=True, exist_ok=True)
            faiss.write_index(self.index, str(self.persist_path / "index.faiss"))

            meta = {
                "int_ids": self._int_ids,
                "documents": self._documents,
                "metadata": self._metadata,
                "next_id": self._next_id,
            }
            with open(self.persist_path / "metadata.json", "w") as f:
                json.dump(meta, f)

        logger.debug(f"Saved FAISS index to {self.persist_path}")

    def _load(self) -> None:
        """Load index and sidecar from disk."""
        import faiss

        self._index = faiss.read_index(str(self.persist_path / "index.faiss"))

        meta_path = self.persist_path / "metadata.json"
        if meta_path.exists():
            with open(meta_path) as f:
                meta = json.load(f)
            self._int_ids = {k: int(v) for k, v in meta["int_ids"].items()}
            self._documents = meta["documents"]
            self._metadata = meta["metadata"]
            self._next_id = meta["next_id"]

        logger.info(f"Loaded FAISS index from {self.persist_path}")


class EmbeddingStore:
    """
    Adapter over one vector store per entity kind.

    This is the only component that writes embeddings. Backend failures
    surface as ``StoreError``; a missing row is ``None``, not an error.
    Stores that persist explicitly (FAISS) are flushed after every write.
    """

    def __init__(self, stores: dict[EntityKind, VectorStore]):
        missing = set(EntityKind) - set(stores)
        if missing:
            raise ValueError(f"No vector store configured for: {sorted(k.value for k in missing)}")
        self._stores = {EntityKind(k): v for k, v in stores.items()}

    def store_for(self, kind: EntityKind | str) -> VectorStore:
        return self._stores[EntityKind(kind)]

    @contextmanager
    def _guard(self, kind: EntityKind | str, operation: str) -> Iterator[None]:
        try:
            yield
        except MatchingError:
            raise
        except Exception as e:
            logger.error(f"Vector store {operation} failed for {EntityKind(kind).value}: {e}")
            raise StoreError(f"Vector store {operation} failed: {e}") from e

    def upsert(
        self,
        kind: EntityKind | str,
        entity_id: str,
        text_snapshot: str,
        embedding: list[float],
        model_name: Optional[str] = None,
    ) -> None:
        """Insert or fully replace the embedding row of an entity."""
        with self._guard(kind, "upsert"):
            self.store_for(kind).upsert(entity_id, text_snapshot, embedding, model_name)
            self._flush(kind)

    def get_by_entity_id(self, kind: EntityKind | str, entity_id: str) -> Optional[EmbeddingRecord]:
        """Return the stored row, or None when the entity was never embedded."""
        with self._guard(kind, "get"):
            return self.store_for(kind).get(entity_id)

    def search(
        self,
        kind: EntityKind | str,
        query_vector: list[float],
        k: int,
        min_similarity: Optional[float] = None,
    ) -> list[SearchResult]:
        """Top ``k`` rows of ``kind`` by cosine similarity, best first."""
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        with self._guard(kind, "search"):
            return self.store_for(kind).search(query_vector, top_k=k, min_similarity=min_similarity)

    def delete(self, kind: EntityKind | str, entity_id: str) -> bool:
        with self._guard(kind, "delete"):
            existed = self.store_for(kind).delete(entity_id)
            if existed:
                self._flush(kind)
            return existed

    def count(self, kind: EntityKind | str) -> int:
        with self._guard(kind, "count"):
            return self.store_for(kind).count()

    def _flush(self, kind: EntityKind | str) -> None:
        store = self.store_for(kind)
        if isinstance(store, FAISSVectorStore):
            store.save()

    def save(self) -> None:
        """Flush stores that persist explicitly (FAISS)."""
        for kind, store in self._stores.items():
            if isinstance(store, FAISSVectorStore):
                with self._guard(kind, "save"):
                    store.save()


def get_vector_store(
    kind: EntityKind | str,
    provider: Optional[str] = None,
) -> VectorStore:
    """
    Factory function to get the vector store for one entity kind.

    Args:
        kind: Entity kind the collection holds.
        provider: 'chromadb', 'faiss' or 'memory'. Defaults to config setting.

    Returns:
        VectorStore instance.
    """
    settings = get_settings()
    provider = provider or settings.vector_store.provider
    kind = EntityKind(kind)
    collection_name = (
        settings.vector_store.intern_collection
        if kind is EntityKind.INTERN
        else settings.vector_store.job_collection
    )

    if provider == "chromadb":
        return ChromaVectorStore(collection_name=collection_name)
    elif provider == "faiss":
        return FAISSVectorStore(
            persist_path=settings.vector_store.persist_directory / collection_name,
        )
    elif provider == "memory":
        return MemoryVectorStore(dimension=settings.ml.embedding_dimension)
    else:
        raise ValueError(f"Unknown vector store provider: {provider}")


_embedding_store: Optional[EmbeddingStore] = None


def get_embedding_store() -> EmbeddingStore:
    """Get the process-wide embedding store."""
    global _embedding_store
    if _embedding_store is None:
        _embedding_store = EmbeddingStore({kind: get_vector_store(kind) for kind in EntityKind})
    return _embedding_store
