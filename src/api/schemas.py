"""
Request and response schemas for the HTTP adapter.
"""

from typing import Optional

from pydantic import BaseModel, Field


class InternEmbeddingRequest(BaseModel):
    """Body of ``POST /api/embedding/intern``."""

    intern_id: str = Field(min_length=1)
    changed_fields: Optional[list[str]] = None
    wait: bool = True


class JobEmbeddingRequest(BaseModel):
    """Body of ``POST /api/embedding/job``."""

    job_id: str = Field(min_length=1)
    changed_fields: Optional[list[str]] = None
    wait: bool = True


class EmbeddingResponse(BaseModel):
    success: bool
    status: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    retryable: bool = False


class HealthResponse(BaseModel):
    status: str
    model: str
    model_loaded: bool
    model_failed: bool
    intern_embeddings: Optional[int] = None
    job_embeddings: Optional[int] = None
