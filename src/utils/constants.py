"""
Application-wide constants for the Internship Matcher service.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "intern-match"
APP_DISPLAY_NAME: Final[str] = "Internship Matcher"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Entity Kinds
# =============================================================================


class EntityKind(str, Enum):
    """Kinds of entity that can be embedded."""

    INTERN = "intern"
    JOB = "job"


class EmbedStatus(str, Enum):
    """Outcome of a write-path embedding request."""

    EMBEDDED = "embedded"
    SKIPPED = "skipped"
    FAILED = "failed"


# Fields whose change alters the normalized document
MATERIAL_FIELDS: Final[dict[EntityKind, frozenset[str]]] = {
    EntityKind.INTERN: frozenset({"summary", "skills"}),
    EntityKind.JOB: frozenset({"title", "description", "requirements", "responsibilities"}),
}


# =============================================================================
# Matching Constants
# =============================================================================

UNKNOWN_COMPANY: Final[str] = "Unknown Company"

# Tolerance used when checking unit-length vectors
UNIT_NORM_TOLERANCE: Final[float] = 1e-4
