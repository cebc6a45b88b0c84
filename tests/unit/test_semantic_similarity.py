"""
Tests for src.ml.embeddings.semantic_similarity — cosine scoring and search.
"""

import time

import pytest

from src.core.exceptions import OperationTimeoutError
from src.ml.embeddings.semantic_similarity import (
    SearchResult,
    SimilaritySearchService,
    cosine_similarity,
    rank_results,
)
from src.utils.constants import EntityKind


# ── cosine_similarity ────────────────────────────────────────────────────────


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_degenerate_inputs(self):
        assert cosine_similarity([], []) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


# ── rank_results ─────────────────────────────────────────────────────────────


class TestRankResults:
    def test_similarity_desc_then_id(self):
        results = [
            SearchResult("b", 0.5),
            SearchResult("c", 0.9),
            SearchResult("a", 0.5),
        ]
        assert [r.id for r in rank_results(results)] == ["c", "a", "b"]

    def test_k_and_threshold(self):
        results = [SearchResult(str(i), i / 10) for i in range(10)]
        ranked = rank_results(results, k=3, min_similarity=0.85)
        assert [r.id for r in ranked] == ["9"]


# ── SimilaritySearchService ──────────────────────────────────────────────────


class SlowStore:
    def search(self, kind, query_vector, k, min_similarity=None):
        time.sleep(0.3)
        return []


class TestSimilaritySearchService:
    @pytest.fixture
    def populated(self, embedding_store):
        embedding_store.upsert(EntityKind.JOB, "j1", "", [1.0, 0.0])
        embedding_store.upsert(EntityKind.JOB, "j2", "", [0.6, 0.8])
        embedding_store.upsert(EntityKind.JOB, "j3", "", [0.0, 1.0])
        return embedding_store

    @pytest.mark.asyncio
    async def test_top_k(self, populated, search_service):
        results = await search_service.find_top_matches([1.0, 0.0], EntityKind.JOB, k=2)
        assert [r.id for r in results] == ["j1", "j2"]
        assert results[1].similarity == pytest.approx(0.6, abs=1e-5)

    @pytest.mark.asyncio
    async def test_defaults_to_configured_k(self, populated, search_service):
        results = await search_service.find_top_matches([1.0, 0.0], "job")
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_min_similarity(self, populated, search_service):
        results = await search_service.find_top_matches(
            [1.0, 0.0], EntityKind.JOB, k=3, min_similarity=0.5
        )
        assert [r.id for r in results] == ["j1", "j2"]

    @pytest.mark.asyncio
    async def test_cold_start(self, search_service):
        assert await search_service.find_top_matches([1.0, 0.0], EntityKind.JOB, k=5) == []

    @pytest.mark.asyncio
    async def test_wrong_kind_is_empty(self, populated, search_service):
        assert await search_service.find_top_matches([1.0, 0.0], EntityKind.INTERN) == []

    @pytest.mark.asyncio
    async def test_repeatable(self, populated, search_service):
        first = await search_service.find_top_matches([0.8, 0.6], EntityKind.JOB)
        second = await search_service.find_top_matches([0.8, 0.6], EntityKind.JOB)
        assert first == second

    @pytest.mark.asyncio
    async def test_rejects_k_below_one(self, search_service):
        with pytest.raises(ValueError):
            await search_service.find_top_matches([1.0, 0.0], EntityKind.JOB, k=0)

    @pytest.mark.asyncio
    async def test_timeout(self):
        service = SimilaritySearchService(store=SlowStore(), default_k=5, timeout=0.05)
        with pytest.raises(OperationTimeoutError) as exc_info:
            await service.find_top_matches([1.0], EntityKind.JOB)
        assert exc_info.value.retryable
