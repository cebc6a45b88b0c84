"""Job-intern matching orchestration module."""

from .orchestrator import (
    EmbedOutcome,
    MatchOrchestrator,
    get_match_orchestrator,
)

__all__ = [
    "EmbedOutcome",
    "MatchOrchestrator",
    "get_match_orchestrator",
]
