"""
Data models for the Internship Matcher service.

Pydantic models for the entities the matching pipeline reads, the
embedding records it owns, and the results it returns.
"""

from .base import BaseDocument, EmbeddedModel
from .embedding import EmbeddingRecord
from .job import JobPost
from .match import CandidateMatch, MatchResult, sort_key
from .profile import InternProfile

__all__ = [
    "BaseDocument",
    "EmbeddedModel",
    "EmbeddingRecord",
    "InternProfile",
    "JobPost",
    "MatchResult",
    "CandidateMatch",
    "sort_key",
]
