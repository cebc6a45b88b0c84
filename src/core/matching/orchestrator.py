"""
Match orchestrator: the end-to-end embedding and matching flows.

Write path: fetch entity -> normalize -> embed -> upsert. Nothing is
written unless every step succeeds.

Read path: load the intern's stored embedding -> similarity search over
job embeddings -> one batched hydration read -> merge and rank.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from src.core.exceptions import MatchingError, NoEmbeddingError, NotFoundError
from src.data.entity_store import EntityStore
from src.data.models import CandidateMatch, MatchResult, sort_key
from src.ml.embeddings.embedding_model import EmbeddingModel, get_embedding_model
from src.ml.embeddings.normalizer import normalize, touches_material_fields
from src.ml.embeddings.semantic_similarity import SimilaritySearchService, get_search_service
from src.ml.embeddings.vector_store import EmbeddingStore, get_embedding_store
from src.utils.config import get_settings
from src.utils.constants import EmbedStatus, EntityKind
from src.utils.logger import audit_log, get_logger

logger = get_logger(__name__)

_DEFAULT = object()


def _search_options(min_similarity: Any, timeout: Any) -> dict[str, Any]:
    """Forward only the options the caller actually set."""
    options: dict[str, Any] = {}
    if min_similarity is not _DEFAULT:
        options["min_similarity"] = min_similarity
    if timeout is not _DEFAULT:
        options["timeout"] = timeout
    return options


@dataclass
class EmbedOutcome:
    """Observable result of one write-path request."""

    kind: EntityKind
    entity_id: str
    status: EmbedStatus
    error: Optional[MatchingError] = None
    dimension: int = 0

    @property
    def ok(self) -> bool:
        return self.status != EmbedStatus.FAILED

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "entity_id": self.entity_id,
            "status": self.status.value,
        }
        if self.error is not None:
            data["error"] = str(self.error)
            data["code"] = self.error.code
            data["retryable"] = self.error.retryable
        return data


class MatchOrchestrator:
    """
    Coordinates the normalizer, embedding model, vector store and
    similarity search against the entity store collaborator.

    Performs no retries of its own; callers decide what to do with
    retryable errors.
    """

    def __init__(
        self,
        entity_store: Optional[EntityStore] = None,
        embedding_model: Optional[EmbeddingModel] = None,
        embedding_store: Optional[EmbeddingStore] = None,
        search_service: Optional[SimilaritySearchService] = None,
    ):
        self._entity_store = entity_store
        self._embedding_model = embedding_model
        self._embedding_store = embedding_store
        self._search_service = search_service
        self._pending: set[asyncio.Task] = set()

    @property
    def entity_store(self) -> EntityStore:
        """Get the entity store (lazy initialization)."""
        if self._entity_store is None:
            from src.data.entity_store import MongoEntityStore

            self._entity_store = MongoEntityStore()
        return self._entity_store

    @property
    def embedding_model(self) -> EmbeddingModel:
        """Get the embedding model (lazy initialization)."""
        if self._embedding_model is None:
            self._embedding_model = get_embedding_model()
        return self._embedding_model

    @property
    def embedding_store(self) -> EmbeddingStore:
        """Get the embedding store (lazy initialization)."""
        if self._embedding_store is None:
            self._embedding_store = get_embedding_store()
        return self._embedding_store

    @property
    def search_service(self) -> SimilaritySearchService:
        """Get the similarity search service (lazy initialization)."""
        if self._search_service is None:
            if self._embedding_store is not None:
                self._search_service = SimilaritySearchService(store=self._embedding_store)
            else:
                self._search_service = get_search_service()
        return self._search_service

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def _fetch_entity(self, kind: EntityKind, entity_id: str) -> Any:
        if kind is EntityKind.INTERN:
            entity = await self.entity_store.get_profile(entity_id)
        else:
            entity = await self.entity_store.get_job_post(entity_id)

        if entity is None:
            logger.warning(f"Skipping embedding: {kind.value} {entity_id} no longer exists")
            raise NotFoundError(kind.value, entity_id)
        return entity

    async def on_entity_changed(
        self,
        kind: EntityKind | str,
        entity_id: str,
        changed_fields: Optional[Iterable[str]] = None,
        timeout: Optional[float] | object = _DEFAULT,
    ) -> EmbedOutcome:
        """
        Re-embed an entity after it was created or updated.

        Args:
            kind: Entity kind.
            entity_id: Id of the profile or job post.
            changed_fields: Fields touched by an update. When given and none
                of them feeds the semantic document, an entity that already
                has an embedding is left alone.
            timeout: Inference timeout; defaults to the configured value.

        Returns:
            An ``embedded`` or ``skipped`` outcome.

        Raises:
            NotFoundError: The entity no longer exists.
            ModelLoadError: The embedding model could not be initialized.
            EmbeddingError / OperationTimeoutError: Inference failed.
            StoreError: The vector store write failed.
        """
        kind = EntityKind(kind)

        if changed_fields is not None and not touches_material_fields(kind, changed_fields):
            existing = await asyncio.to_thread(self.embedding_store.get_by_entity_id, kind, entity_id)
            if existing is not None:
                logger.debug(f"No material change for {kind.value} {entity_id}; embedding kept")
                return EmbedOutcome(kind, entity_id, EmbedStatus.SKIPPED, dimension=existing.dimension)

        entity = await self._fetch_entity(kind, entity_id)
        text = normalize(entity, kind)

        if timeout is _DEFAULT:
            embedding = await self.embedding_model.embed(text)
        else:
            embedding = await self.embedding_model.embed(text, timeout=timeout)

        await asyncio.to_thread(
            self.embedding_store.upsert,
            kind,
            entity_id,
            text,
            embedding,
            self.embedding_model.model_name,
        )

        audit_log(
            "embedding_upserted",
            {
                "kind": kind.value,
                "entity_id": entity_id,
                "dimension": len(embedding),
                "model": self.embedding_model.model_name,
            },
        )
        logger.info(f"Embedded {kind.value} {entity_id} ({len(embedding)} dims)")
        return EmbedOutcome(kind, entity_id, EmbedStatus.EMBEDDED, dimension=len(embedding))

    async def _run_entity_changed(
        self,
        kind: EntityKind | str,
        entity_id: str,
        changed_fields: Optional[Iterable[str]] = None,
    ) -> EmbedOutcome:
        """Run the write path and turn typed failures into a failed outcome."""
        try:
            return await self.on_entity_changed(kind, entity_id, changed_fields)
        except NotFoundError as e:
            return EmbedOutcome(EntityKind(kind), entity_id, EmbedStatus.FAILED, error=e)
        except MatchingError as e:
            logger.error(
                f"Embedding {EntityKind(kind).value} {entity_id} failed "
                f"({'retryable' if e.retryable else 'permanent'}): {e}"
            )
            return EmbedOutcome(EntityKind(kind), entity_id, EmbedStatus.FAILED, error=e)

    def submit_entity_changed(
        self,
        kind: EntityKind | str,
        entity_id: str,
        changed_fields: Optional[Iterable[str]] = None,
    ) -> "asyncio.Task[EmbedOutcome]":
        """
        Schedule the write path in the background.

        The returned task resolves to an ``EmbedOutcome``; typed failures
        are logged and reported in the outcome instead of being raised.
        Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self._run_entity_changed(kind, entity_id, changed_fields),
            name=f"embed-{EntityKind(kind).value}-{entity_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> list[EmbedOutcome]:
        """Wait for every submitted background task to finish."""
        if not self._pending:
            return []
        return list(await asyncio.gather(*self._pending))

    async def backfill(
        self,
        kind: EntityKind | str,
        ids: Optional[Iterable[str]] = None,
        delay: Optional[float] = None,
    ) -> list[EmbedOutcome]:
        """
        Re-embed many entities of one kind, one at a time.

        Args:
            kind: Entity kind.
            ids: Ids to embed; defaults to every entity of the kind.
            delay: Pause between entities in seconds; defaults to config.
        """
        kind = EntityKind(kind)
        delay = get_settings().matching.backfill_delay if delay is None else delay
        id_list = list(ids) if ids is not None else await self.entity_store.list_ids(kind)

        logger.info(f"Backfilling {len(id_list)} {kind.value} embeddings")
        outcomes = []
        for position, entity_id in enumerate(id_list):
            outcomes.append(await self._run_entity_changed(kind, entity_id))
            if delay and position < len(id_list) - 1:
                await asyncio.sleep(delay)

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(f"Backfill finished: {len(outcomes) - failed} embedded, {failed} failed")
        return outcomes

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    async def _stored_embedding(self, kind: EntityKind, entity_id: str) -> list[float]:
        record = await asyncio.to_thread(self.embedding_store.get_by_entity_id, kind, entity_id)
        if record is None:
            raise NoEmbeddingError(kind.value, entity_id)
        return record.embedding

    async def get_matches_for_intern(
        self,
        intern_id: str,
        k: Optional[int] = None,
        min_similarity: Optional[float] | object = _DEFAULT,
        timeout: Optional[float] | object = _DEFAULT,
    ) -> list[MatchResult]:
        """
        Recommend job posts to an intern.

        Returns an empty list when no job has been embedded yet.

        Raises:
            NoEmbeddingError: The intern has never been embedded.
            OperationTimeoutError: The similarity search timed out.
            StoreError: A vector store or entity store read failed.
        """
        query = await self._stored_embedding(EntityKind.INTERN, intern_id)

        hits = await self.search_service.find_top_matches(
            query, EntityKind.JOB, k=k, **_search_options(min_similarity, timeout)
        )
        if not hits:
            return []

        scores = {hit.id: hit.similarity for hit in hits}
        jobs = await self.entity_store.get_job_posts_by_ids(list(scores))

        results = [
            MatchResult.from_job(job, scores[job.id], intern_id)
            for job in jobs
            if job.id in scores
        ]
        # Hydration order is whatever the store returned
        results.sort(key=sort_key)

        if len(results) < len(hits):
            logger.debug(f"{len(hits) - len(results)} matched jobs no longer exist")
        audit_log(
            "matches_served",
            {"intern_id": intern_id, "count": len(results)},
            audit_type="MATCH",
        )
        return results

    async def get_candidates_for_job(
        self,
        job_id: str,
        k: Optional[int] = None,
        min_similarity: Optional[float] | object = _DEFAULT,
        timeout: Optional[float] | object = _DEFAULT,
    ) -> list[CandidateMatch]:
        """
        Rank interns against a job post.

        Raises:
            NoEmbeddingError: The job post has never been embedded.
        """
        query = await self._stored_embedding(EntityKind.JOB, job_id)

        hits = await self.search_service.find_top_matches(
            query, EntityKind.INTERN, k=k, **_search_options(min_similarity, timeout)
        )
        if not hits:
            return []

        scores = {hit.id: hit.similarity for hit in hits}
        profiles = await self.entity_store.get_profiles_by_ids(list(scores))

        results = [
            CandidateMatch.from_profile(profile, scores[profile.id])
            for profile in profiles
            if profile.id in scores
        ]
        results.sort(key=sort_key)
        return results


# Singleton instance
_orchestrator: Optional[MatchOrchestrator] = None


def get_match_orchestrator() -> MatchOrchestrator:
    """Get the match orchestrator singleton instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = MatchOrchestrator()
    return _orchestrator
