"""
Tests for src.core.matching.orchestrator — write and read paths end to end.

Runs against the in-memory entity store, the hashing stand-in encoder and
in-memory vector stores, so no database or model download is needed.
"""

import pytest

from src.core.exceptions import (
    EmbeddingError,
    ModelLoadError,
    NoEmbeddingError,
    NotFoundError,
)
from src.core.matching import MatchOrchestrator
from src.ml.embeddings import EmbeddingModel, normalize
from src.utils.constants import UNKNOWN_COMPANY, EmbedStatus, EntityKind


async def embed_all(orchestrator, entity_store):
    for intern_id in entity_store.profiles:
        await orchestrator.on_entity_changed(EntityKind.INTERN, intern_id)
    for job_id in entity_store.jobs:
        await orchestrator.on_entity_changed(EntityKind.JOB, job_id)


# ── on_entity_changed ────────────────────────────────────────────────────────


class TestOnEntityChanged:
    @pytest.mark.asyncio
    async def test_embeds_and_stores_snapshot(self, orchestrator, entity_store, embedding_store):
        outcome = await orchestrator.on_entity_changed("intern", "intern-1")

        assert outcome.status == EmbedStatus.EMBEDDED
        assert outcome.ok
        assert outcome.dimension == 384

        record = embedding_store.get_by_entity_id(EntityKind.INTERN, "intern-1")
        assert record.text_snapshot == normalize(entity_store.profiles["intern-1"], EntityKind.INTERN)
        assert record.model_name == "test-hashing-encoder"

    @pytest.mark.asyncio
    async def test_missing_entity(self, orchestrator, embedding_store, encoder):
        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.on_entity_changed(EntityKind.JOB, "ghost")

        assert not exc_info.value.retryable
        assert embedding_store.count(EntityKind.JOB) == 0
        assert encoder.calls == 0

    @pytest.mark.asyncio
    async def test_re_embedding_replaces_row(self, orchestrator, entity_store, embedding_store):
        await orchestrator.on_entity_changed(EntityKind.JOB, "job-a")
        entity_store.jobs["job-a"] = entity_store.jobs["job-a"].model_copy(update={"title": "Data Intern"})

        await orchestrator.on_entity_changed(EntityKind.JOB, "job-a", changed_fields=["title"])

        assert embedding_store.count(EntityKind.JOB) == 1
        assert embedding_store.get_by_entity_id("job", "job-a").text_snapshot.startswith("Data Intern\n")

    @pytest.mark.asyncio
    async def test_non_material_update_is_skipped(self, orchestrator, encoder):
        await orchestrator.on_entity_changed(EntityKind.INTERN, "intern-1")
        calls = encoder.calls

        outcome = await orchestrator.on_entity_changed(
            EntityKind.INTERN, "intern-1", changed_fields=["email", "course"]
        )

        assert outcome.status == EmbedStatus.SKIPPED
        assert encoder.calls == calls

    @pytest.mark.asyncio
    async def test_non_material_update_without_embedding_embeds(self, orchestrator):
        outcome = await orchestrator.on_entity_changed(
            EntityKind.JOB, "job-b", changed_fields=["location"]
        )
        assert outcome.status == EmbedStatus.EMBEDDED

    @pytest.mark.asyncio
    async def test_failed_inference_keeps_previous_row(
        self, entity_store, embedding_store, search_service, make_session, make_encoder, orchestrator
    ):
        await orchestrator.on_entity_changed(EntityKind.INTERN, "intern-1")
        before = embedding_store.get_by_entity_id(EntityKind.INTERN, "intern-1")

        broken = MatchOrchestrator(
            entity_store=entity_store,
            embedding_model=EmbeddingModel(
                session=make_session(lambda: make_encoder(error=RuntimeError("boom"))),
                timeout=5.0,
            ),
            embedding_store=embedding_store,
            search_service=search_service,
        )
        with pytest.raises(EmbeddingError):
            await broken.on_entity_changed(EntityKind.INTERN, "intern-1")

        after = embedding_store.get_by_entity_id(EntityKind.INTERN, "intern-1")
        assert after.text_snapshot == before.text_snapshot
        assert after.embedding == before.embedding

    @pytest.mark.asyncio
    async def test_model_load_failure(self, entity_store, embedding_store, make_session):
        def loader():
            raise OSError("disk full")

        orchestrator = MatchOrchestrator(
            entity_store=entity_store,
            embedding_model=EmbeddingModel(session=make_session(loader), timeout=5.0),
            embedding_store=embedding_store,
        )
        with pytest.raises(ModelLoadError):
            await orchestrator.on_entity_changed(EntityKind.JOB, "job-a")
        assert embedding_store.count(EntityKind.JOB) == 0


# ── submit_entity_changed / backfill ─────────────────────────────────────────


class TestBackgroundAndBackfill:
    @pytest.mark.asyncio
    async def test_submitted_task_resolves_to_outcome(self, orchestrator, embedding_store):
        task = orchestrator.submit_entity_changed(EntityKind.JOB, "job-a")
        outcome = await task

        assert outcome.status == EmbedStatus.EMBEDDED
        assert embedding_store.count(EntityKind.JOB) == 1

    @pytest.mark.asyncio
    async def test_submitted_failure_is_reported_not_raised(self, orchestrator):
        task = orchestrator.submit_entity_changed(EntityKind.INTERN, "ghost")
        outcome = await task

        assert outcome.status == EmbedStatus.FAILED
        assert isinstance(outcome.error, NotFoundError)
        assert outcome.to_dict()["code"] == "not_found"
        assert not outcome.retryable

    @pytest.mark.asyncio
    async def test_drain_waits_for_pending(self, orchestrator, embedding_store):
        orchestrator.submit_entity_changed(EntityKind.JOB, "job-a")
        orchestrator.submit_entity_changed(EntityKind.JOB, "job-b")

        outcomes = await orchestrator.drain()

        assert len(outcomes) == 2
        assert embedding_store.count(EntityKind.JOB) == 2
        assert await orchestrator.drain() == []

    @pytest.mark.asyncio
    async def test_backfill_every_entity(self, orchestrator, entity_store, embedding_store):
        outcomes = await orchestrator.backfill(EntityKind.JOB, delay=0)

        assert [o.entity_id for o in outcomes] == ["job-a", "job-b"]
        assert all(o.ok for o in outcomes)
        assert embedding_store.count(EntityKind.JOB) == 2
        assert entity_store.calls["list_ids"] == 1

    @pytest.mark.asyncio
    async def test_backfill_continues_past_failures(self, orchestrator, embedding_store):
        outcomes = await orchestrator.backfill(EntityKind.INTERN, ids=["intern-1", "ghost", "intern-2"], delay=0)

        assert [o.status for o in outcomes] == [
            EmbedStatus.EMBEDDED,
            EmbedStatus.FAILED,
            EmbedStatus.EMBEDDED,
        ]
        assert embedding_store.count(EntityKind.INTERN) == 2


# ── get_matches_for_intern ───────────────────────────────────────────────────


class TestGetMatchesForIntern:
    @pytest.mark.asyncio
    async def test_relevant_job_ranks_first(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)

        matches = await orchestrator.get_matches_for_intern("intern-1")

        assert [m.id for m in matches] == ["job-a", "job-b"]
        assert matches[0].similarity > matches[1].similarity
        assert matches[0].company == "Acme Web"
        assert matches[0].location == "Manila"

    @pytest.mark.asyncio
    async def test_single_batched_hydration(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)
        reads_before = entity_store.calls["get_job_post"]

        await orchestrator.get_matches_for_intern("intern-1")

        assert entity_store.calls["get_job_posts_by_ids"] == 1
        assert entity_store.calls["get_job_post"] == reads_before

    @pytest.mark.asyncio
    async def test_never_embedded_intern(self, orchestrator, entity_store):
        with pytest.raises(NoEmbeddingError) as exc_info:
            await orchestrator.get_matches_for_intern("intern-1")
        assert exc_info.value.code == "no_embedding"
        assert entity_store.calls["get_job_posts_by_ids"] == 0

    @pytest.mark.asyncio
    async def test_cold_start_returns_empty(self, orchestrator, entity_store):
        await orchestrator.on_entity_changed(EntityKind.INTERN, "intern-1")

        assert await orchestrator.get_matches_for_intern("intern-1") == []
        assert entity_store.calls["get_job_posts_by_ids"] == 0

    @pytest.mark.asyncio
    async def test_has_applied_and_unknown_company(self, orchestrator, entity_store):
        entity_store.applications.add(("intern-1", "job-b"))
        entity_store.applications.add(("intern-2", "job-a"))
        del entity_store.companies["c-beans"]
        await embed_all(orchestrator, entity_store)

        matches = {m.id: m for m in await orchestrator.get_matches_for_intern("intern-1")}

        assert matches["job-b"].has_applied is True
        assert matches["job-a"].has_applied is False
        assert matches["job-b"].company == UNKNOWN_COMPANY
        assert "applicant_ids" not in matches["job-a"].model_dump()

    @pytest.mark.asyncio
    async def test_k_and_threshold(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)

        assert len(await orchestrator.get_matches_for_intern("intern-1", k=1)) == 1
        assert await orchestrator.get_matches_for_intern("intern-1", min_similarity=0.999) == []

    @pytest.mark.asyncio
    async def test_deleted_job_is_dropped(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)
        del entity_store.jobs["job-b"]

        matches = await orchestrator.get_matches_for_intern("intern-1")
        assert [m.id for m in matches] == ["job-a"]

    @pytest.mark.asyncio
    async def test_repeated_calls_are_identical(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)

        first = await orchestrator.get_matches_for_intern("intern-2")
        second = await orchestrator.get_matches_for_intern("intern-2")
        assert [(m.id, m.similarity) for m in first] == [(m.id, m.similarity) for m in second]
        assert first[0].id == "job-b"


# ── get_candidates_for_job ───────────────────────────────────────────────────


class TestGetCandidatesForJob:
    @pytest.mark.asyncio
    async def test_ranks_interns(self, orchestrator, entity_store):
        await embed_all(orchestrator, entity_store)

        candidates = await orchestrator.get_candidates_for_job("job-b")

        assert [c.id for c in candidates] == ["intern-2", "intern-1"]
        assert candidates[0].full_name == "Ben Lim"
        assert entity_store.calls["get_profiles_by_ids"] == 1

    @pytest.mark.asyncio
    async def test_never_embedded_job(self, orchestrator):
        with pytest.raises(NoEmbeddingError):
            await orchestrator.get_candidates_for_job("job-a")
