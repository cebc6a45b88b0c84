"""
Shared test fixtures for the Internship Matcher test suite.

Sets environment variables before any src imports so no database, model
download or log file is touched, then provides a deterministic stand-in
encoder, an in-memory entity store and a wired orchestrator.
"""

import os

# === Set environment BEFORE any src imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("DB_NAME", "internship_matcher_test")
os.environ.setdefault("VECTOR_PROVIDER", "memory")
os.environ.setdefault("ML_DEVICE", "cpu")
os.environ.setdefault("LOG_FILE_OUTPUT", "false")
os.environ.setdefault("MATCH_BACKFILL_DELAY", "0")

import re
import time
import zlib
from collections import Counter
from typing import Any, Optional

import numpy as np
import pytest

from src.core.matching import MatchOrchestrator
from src.data.models import InternProfile, JobPost
from src.ml.embeddings import (
    EmbeddingModel,
    EmbeddingStore,
    MemoryVectorStore,
    ModelSession,
    SimilaritySearchService,
)
from src.utils.constants import UNKNOWN_COMPANY, EntityKind

DIMENSION = 384


# ---------------------------------------------------------------------------
# Stand-in collaborators
# ---------------------------------------------------------------------------


class HashingEncoder:
    """
    Bag-of-words encoder with the sentence-transformers ``encode`` signature.

    Each lowercase token is hashed into one of ``dimension`` buckets, so
    documents sharing words score higher. Output is deterministic.
    """

    def __init__(self, dimension: int = DIMENSION, delay: float = 0.0, error: Optional[Exception] = None):
        self.dimension = dimension
        self.delay = delay
        self.error = error
        self.calls = 0

    def encode(
        self,
        texts,
        batch_size=32,
        show_progress_bar=False,
        normalize_embeddings=True,
        convert_to_numpy=True,
    ):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error

        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for row, text in enumerate(texts):
            for token in re.findall(r"[a-z0-9+#]+", text.lower()):
                vectors[row, zlib.crc32(token.encode()) % self.dimension] += 1.0

        if normalize_embeddings:
            norms = np.linalg.norm(vectors, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            vectors = vectors / norms
        return vectors


class InMemoryEntityStore:
    """Entity store over plain dicts that records every call it receives."""

    def __init__(self):
        self.profiles: dict[str, InternProfile] = {}
        self.jobs: dict[str, JobPost] = {}
        self.companies: dict[str, str] = {}
        self.applications: set[tuple[str, str]] = set()
        self.calls: Counter = Counter()

    def add_profile(self, **data: Any) -> InternProfile:
        profile = InternProfile.model_validate(data)
        self.profiles[profile.id] = profile
        return profile

    def add_job(self, **data: Any) -> JobPost:
        job = JobPost.model_validate(data)
        self.jobs[job.id] = job
        return job

    def _hydrate(self, job: JobPost) -> JobPost:
        return job.model_copy(update={
            "company": self.companies.get(job.company_id or "", UNKNOWN_COMPANY),
            "applicant_ids": sorted(i for i, j in self.applications if j == job.id),
        })

    async def get_profile(self, intern_id: str) -> Optional[InternProfile]:
        self.calls["get_profile"] += 1
        return self.profiles.get(intern_id)

    async def get_job_post(self, job_id: str) -> Optional[JobPost]:
        self.calls["get_job_post"] += 1
        return self.jobs.get(job_id)

    async def get_job_posts_by_ids(self, job_ids: list[str]) -> list[JobPost]:
        self.calls["get_job_posts_by_ids"] += 1
        # Reverse order so callers cannot rely on the store's ordering
        return [self._hydrate(self.jobs[i]) for i in reversed(job_ids) if i in self.jobs]

    async def get_profiles_by_ids(self, intern_ids: list[str]) -> list[InternProfile]:
        self.calls["get_profiles_by_ids"] += 1
        return [self.profiles[i] for i in intern_ids if i in self.profiles]

    async def list_ids(self, kind: EntityKind) -> list[str]:
        self.calls["list_ids"] += 1
        source = self.profiles if EntityKind(kind) is EntityKind.INTERN else self.jobs
        return sorted(source)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_encoder():
    """Factory for stand-in encoders (optionally slow or failing)."""
    return HashingEncoder


@pytest.fixture
def encoder() -> HashingEncoder:
    return HashingEncoder()


@pytest.fixture
def make_session():
    """Factory for model sessions around a given loader."""

    def _factory(loader) -> ModelSession:
        return ModelSession(model_name="test-hashing-encoder", device="cpu", loader=loader)

    return _factory


@pytest.fixture
def model_session(make_session, encoder) -> ModelSession:
    return make_session(lambda: encoder)


@pytest.fixture
def embedding_model(model_session) -> EmbeddingModel:
    return EmbeddingModel(session=model_session, batch_size=8, timeout=5.0)


@pytest.fixture
def embedding_store() -> EmbeddingStore:
    return EmbeddingStore({
        EntityKind.INTERN: MemoryVectorStore(),
        EntityKind.JOB: MemoryVectorStore(),
    })


@pytest.fixture
def search_service(embedding_store) -> SimilaritySearchService:
    return SimilaritySearchService(
        store=embedding_store,
        default_k=10,
        default_min_similarity=None,
        timeout=5.0,
    )


@pytest.fixture
def entity_store() -> InMemoryEntityStore:
    store = InMemoryEntityStore()
    store.companies["c-acme"] = "Acme Web"
    store.companies["c-beans"] = "Beans Enterprise"

    store.add_profile(
        _id="intern-1",
        full_name="Ana Cruz",
        email="ana@example.com",
        course="BS Computer Science",
        skills=["React", "SQL"],
        summary="Frontend developer building React apps backed by SQL databases",
    )
    store.add_profile(
        _id="intern-2",
        full_name="Ben Lim",
        skills=["Java", "Spring"],
        summary="Backend engineer writing Java services",
    )
    store.add_job(
        _id="job-a",
        title="Frontend Developer Intern",
        description="Build React interfaces for our web app",
        requirements=["React", "SQL"],
        responsibilities=["Develop frontend features"],
        location="Manila",
        company_id="c-acme",
    )
    store.add_job(
        _id="job-b",
        title="Backend Java Intern",
        description="Maintain Java Spring services",
        requirements=["Java", "Spring"],
        responsibilities=["Write backend services"],
        company_id="c-beans",
    )
    return store


@pytest.fixture
def orchestrator(entity_store, embedding_model, embedding_store, search_service) -> MatchOrchestrator:
    return MatchOrchestrator(
        entity_store=entity_store,
        embedding_model=embedding_model,
        embedding_store=embedding_store,
        search_service=search_service,
    )
