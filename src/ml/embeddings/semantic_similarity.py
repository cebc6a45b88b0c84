"""
Similarity search over stored embeddings.

The similarity metric (cosine, computed as a dot product of unit vectors)
and the ranking order (similarity descending, entity id ascending) are
defined here and used by every vector store backend, so results are
stable across repeated calls whatever store is configured.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional

import numpy as np

from src.core.exceptions import OperationTimeoutError
from src.utils.config import get_settings
from src.utils.constants import EntityKind
from src.utils.logger import get_logger

if TYPE_CHECKING:
    from .vector_store import EmbeddingStore

logger = get_logger(__name__)

_DEFAULT = object()


@dataclass(frozen=True)
class SearchResult:
    """One hit from a similarity search."""

    id: str
    similarity: float


def cosine_similarity(a: Any, b: Any) -> float:
    """
    Cosine similarity between two vectors.

    For unit vectors this is the plain dot product; other vectors are
    normalized first. Returns 0.0 for empty, zero or mismatched inputs.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.size == 0 or va.shape != vb.shape:
        return 0.0
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def cosine_similarities(matrix: Any, query: Any) -> np.ndarray:
    """Similarity of ``query`` against every row of ``matrix`` (unit vectors)."""
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float32))
    if matrix.shape[0] == 0 or matrix.size == 0:
        return np.array([], dtype=np.float32)
    # Clip to valid range (numerical precision issues)
    return np.clip(matrix @ np.asarray(query, dtype=np.float32), -1.0, 1.0)


def rank_results(
    results: Iterable[SearchResult],
    k: Optional[int] = None,
    min_similarity: Optional[float] = None,
) -> list[SearchResult]:
    """
    Order results by similarity descending, then id ascending.

    Args:
        results: Unordered search hits.
        k: Keep at most this many of the best hits.
        min_similarity: Drop hits below this score, even inside the top k.
    """
    ranked = sorted(results, key=lambda r: (-r.similarity, r.id))
    if k is not None:
        ranked = ranked[:k]
    if min_similarity is not None:
        ranked = [r for r in ranked if r.similarity >= min_similarity]
    return ranked


class SimilaritySearchService:
    """Finds the stored embeddings of one kind nearest to a query vector."""

    def __init__(
        self,
        store: Optional["EmbeddingStore"] = None,
        default_k: Optional[int] = None,
        default_min_similarity: Optional[float] | object = _DEFAULT,
        timeout: Optional[float] | object = _DEFAULT,
    ):
        settings = get_settings().matching
        self._store = store
        self.default_k = default_k or settings.top_k
        self.default_min_similarity = (
            settings.min_similarity if default_min_similarity is _DEFAULT else default_min_similarity
        )
        self.timeout = settings.search_timeout if timeout is _DEFAULT else timeout

    @property
    def store(self) -> "EmbeddingStore":
        """Get the embedding store (lazy initialization)."""
        if self._store is None:
            from .vector_store import get_embedding_store

            self._store = get_embedding_store()
        return self._store

    async def find_top_matches(
        self,
        query_embedding: list[float],
        target_kind: EntityKind | str,
        k: Optional[int] = None,
        min_similarity: Optional[float] | object = _DEFAULT,
        timeout: Optional[float] | object = _DEFAULT,
    ) -> list[SearchResult]:
        """
        Return the ``k`` stored vectors of ``target_kind`` nearest the query.

        Raises:
            ValueError: ``k`` is less than 1.
            OperationTimeoutError: The search exceeded ``timeout``.
            StoreError: The vector store failed.
        """
        k = self.default_k if k is None else k
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        if min_similarity is _DEFAULT:
            min_similarity = self.default_min_similarity
        timeout = self.timeout if timeout is _DEFAULT else timeout

        try:
            results = await asyncio.wait_for(
                asyncio.to_thread(
                    self.store.search,
                    EntityKind(target_kind),
                    query_embedding,
                    k,
                    min_similarity,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise OperationTimeoutError("similarity search", timeout) from e

        ranked = rank_results(results, k=k, min_similarity=min_similarity)
        logger.debug(f"Found {len(ranked)} {EntityKind(target_kind).value} matches (k={k})")
        return ranked


# Singleton instance
_search_service: Optional[SimilaritySearchService] = None


def get_search_service() -> SimilaritySearchService:
    """Get the similarity search service singleton instance."""
    global _search_service
    if _search_service is None:
        _search_service = SimilaritySearchService()
    return _search_service
