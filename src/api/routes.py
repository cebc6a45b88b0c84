"""
HTTP routes for the embedding triggers and the match endpoints.

Pages call the embedding routes after a successful database write; the
match routes return plain JSON arrays sorted by similarity.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from src.core.exceptions import StoreError
from src.core.matching import MatchOrchestrator
from src.utils.constants import EntityKind

from .schemas import (
    EmbeddingResponse,
    HealthResponse,
    InternEmbeddingRequest,
    JobEmbeddingRequest,
)

router = APIRouter(prefix="/api")


def get_orchestrator(request: Request) -> MatchOrchestrator:
    """Dependency returning the orchestrator attached to the app."""
    return request.app.state.orchestrator


async def _trigger(
    orchestrator: MatchOrchestrator,
    kind: EntityKind,
    entity_id: str,
    changed_fields: Optional[list[str]],
    wait: bool,
):
    if not wait:
        orchestrator.submit_entity_changed(kind, entity_id, changed_fields)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"success": True, "status": "accepted"},
        )

    outcome = await orchestrator.on_entity_changed(kind, entity_id, changed_fields)
    return EmbeddingResponse(success=True, status=outcome.status.value)


@router.post("/embedding/intern", response_model=EmbeddingResponse)
async def embed_intern(
    body: InternEmbeddingRequest,
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """(Re-)embed an intern profile."""
    return await _trigger(orchestrator, EntityKind.INTERN, body.intern_id, body.changed_fields, body.wait)


@router.post("/embedding/job", response_model=EmbeddingResponse)
async def embed_job(
    body: JobEmbeddingRequest,
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """(Re-)embed a job post."""
    return await _trigger(orchestrator, EntityKind.JOB, body.job_id, body.changed_fields, body.wait)


@router.get("/match/job/{job_id}")
async def match_candidates(
    job_id: str,
    k: Optional[int] = Query(None, ge=1, le=100),
    min_similarity: Optional[float] = Query(None, ge=-1.0, le=1.0),
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """Interns ranked against a job post."""
    kwargs = {} if min_similarity is None else {"min_similarity": min_similarity}
    candidates = await orchestrator.get_candidates_for_job(job_id, k=k, **kwargs)
    return [c.model_dump(mode="json") for c in candidates]


@router.get("/match/{intern_id}")
async def match_jobs(
    intern_id: str,
    k: Optional[int] = Query(None, ge=1, le=100),
    min_similarity: Optional[float] = Query(None, ge=-1.0, le=1.0),
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    """Job posts recommended to an intern, best first."""
    kwargs = {} if min_similarity is None else {"min_similarity": min_similarity}
    matches = await orchestrator.get_matches_for_intern(intern_id, k=k, **kwargs)
    return [m.model_dump(mode="json") for m in matches]


health_router = APIRouter()


@health_router.get("/health", response_model=HealthResponse)
async def health(orchestrator: MatchOrchestrator = Depends(get_orchestrator)):
    session = orchestrator.embedding_model.session
    counts: dict[str, Optional[int]] = {}
    for kind in EntityKind:
        try:
            counts[f"{kind.value}_embeddings"] = orchestrator.embedding_store.count(kind)
        except StoreError:
            counts[f"{kind.value}_embeddings"] = None

    healthy = not session.failed and None not in counts.values()
    return HealthResponse(
        status="ok" if healthy else "degraded",
        model=session.model_name,
        model_loaded=session.is_loaded,
        model_failed=session.failed,
        **counts,
    )
