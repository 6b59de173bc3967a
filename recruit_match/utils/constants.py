"""
Application-wide constants for recruit-match.

This module contains all constant values used throughout the matching engine.
Modify these values to customize behavior without changing code logic.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "recruit-match"
APP_DISPLAY_NAME: Final[str] = "Recruiting Semantic Matching Engine"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Similarity Constants
# =============================================================================

# Added to the cosine denominator so all-zero vectors score 0 instead of NaN
COSINE_EPSILON: Final[float] = 1e-8

# Tolerance used when comparing vectors reloaded from disk
VECTOR_TOLERANCE: Final[float] = 1e-6

# Joins the matchable fields of an entity into one text
TEXT_SEPARATOR: Final[str] = ". "

# Score thresholds for display ("Affinity" bands)
SCORE_THRESHOLDS: Final[dict[str, float]] = {
    "excellent": 0.85,
    "good": 0.70,
    "fair": 0.50,
    "poor": 0.30,
}


# =============================================================================
# Corpus Sources
# =============================================================================

SOURCE_CANDIDATES: Final[str] = "candidates"
SOURCE_JOBS: Final[str] = "jobs"
SOURCE_CLIENTS: Final[str] = "clients"
SOURCE_DEMO: Final[str] = "demo"

# Fixed demo corpus served under the "demo" source label
DEMO_CORPUS: Final[tuple[tuple[str, str], ...]] = (
    ("1", "Senior React developer with TypeScript and Vite experience."),
    ("2", "Backend engineer experienced in Node.js, PostgreSQL, and Kafka."),
    ("3", "Machine learning engineer familiar with transformers and ONNX."),
)


# =============================================================================
# Enums
# =============================================================================


class EntityKind(str, Enum):
    """Kinds of business entities that can be turned into a corpus."""

    CANDIDATE = "candidates"
    JOB = "jobs"
    CLIENT = "clients"


class BuildState(str, Enum):
    """Lifecycle of a corpus build for one source."""

    UNBUILT = "unbuilt"
    BUILDING = "building"
    READY = "ready"


class ResultStatus(str, Enum):
    """Outcome of a ranking operation."""

    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"


class MatchScoreLevel(Enum):
    """Categorical levels for similarity scores."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> "MatchScoreLevel":
        """Convert a numeric score to a level."""
        if score >= SCORE_THRESHOLDS["excellent"]:
            return cls.EXCELLENT
        elif score >= SCORE_THRESHOLDS["good"]:
            return cls.GOOD
        elif score >= SCORE_THRESHOLDS["fair"]:
            return cls.FAIR
        return cls.POOR


class AuditAction(str, Enum):
    """Types of matching actions that are audited."""

    CORPUS_BUILT = "corpus_built"
    BUILD_CANCELLED = "build_cancelled"
    CACHE_CLEARED = "cache_cleared"
    SEARCH_RANKED = "search_ranked"
    PAIRS_RANKED = "pairs_ranked"
    MODEL_UNAVAILABLE = "model_unavailable"
