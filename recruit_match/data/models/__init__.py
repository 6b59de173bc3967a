"""
Data models for recruit-match.

- base: Shared profile base model and text helpers
- profiles: Candidate, job and client profiles and corpus conversion
- corpus: Corpus entries, cached vectors and match results
"""

from .base import EntityProfile, join_list, join_text
from .corpus import (
    CachedVector,
    CorpusEntry,
    Coverage,
    MatchResult,
    PairMatch,
    QueryMatch,
    RankedResults,
    text_hash,
)
from .profiles import (
    PROFILE_TYPES,
    CandidateProfile,
    ClientProfile,
    JobProfile,
    demo_corpus,
    load_corpus,
    to_corpus_entry,
)

__all__ = [
    # Base
    "EntityProfile",
    "join_list",
    "join_text",
    # Corpus
    "CachedVector",
    "CorpusEntry",
    "Coverage",
    "MatchResult",
    "PairMatch",
    "QueryMatch",
    "RankedResults",
    "text_hash",
    # Profiles
    "PROFILE_TYPES",
    "CandidateProfile",
    "ClientProfile",
    "JobProfile",
    "demo_corpus",
    "load_corpus",
    "to_corpus_entry",
]
