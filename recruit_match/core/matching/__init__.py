"""Semantic matching service module."""

from .matching_service import (
    BuildHandle,
    CancellationToken,
    MatchingService,
    corpus_fingerprint,
    get_matching_service,
)

__all__ = [
    "BuildHandle",
    "CancellationToken",
    "MatchingService",
    "corpus_fingerprint",
    "get_matching_service",
]
