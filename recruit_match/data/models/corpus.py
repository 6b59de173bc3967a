"""
Corpus and match result types shared across the matching engine.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

import numpy as np

from recruit_match.utils.constants import ResultStatus


def text_hash(text: str) -> str:
    """Stable fingerprint of an entry's matchable text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class CorpusEntry:
    """One matchable entity: its stable id and derived text."""

    id: str
    text: str
    vector: Optional[np.ndarray] = None

    @property
    def text_hash(self) -> str:
        return text_hash(self.text)


@dataclass
class CachedVector:
    """A vector together with the hash of the text that produced it."""

    text_hash: str
    vector: np.ndarray


@dataclass(frozen=True)
class PairMatch:
    """Cross-match result between two corpora."""

    left_id: str
    right_id: str
    score: float


@dataclass(frozen=True)
class QueryMatch:
    """Query ranking result against one corpus."""

    id: str
    score: float
    text: str = ""


@dataclass(frozen=True)
class Coverage:
    """How many entries of a corpus took part in a ranking."""

    source: str
    embedded: int
    total: int

    @property
    def missing(self) -> int:
        return self.total - self.embedded

    @property
    def is_partial(self) -> bool:
        return self.embedded < self.total


MatchResult = Union[PairMatch, QueryMatch]


@dataclass
class RankedResults:
    """
    Results of a ranking operation with status and coverage.

    Behaves like the underlying result list for iteration, indexing and len().
    """

    results: list[MatchResult] = field(default_factory=list)
    status: ResultStatus = ResultStatus.OK
    coverage: list[Coverage] = field(default_factory=list)
    message: str = ""

    @classmethod
    def unavailable(cls, message: str, coverage: Optional[list[Coverage]] = None) -> "RankedResults":
        return cls(status=ResultStatus.UNAVAILABLE, coverage=coverage or [], message=message)

    @classmethod
    def empty(cls, message: str, coverage: Optional[list[Coverage]] = None) -> "RankedResults":
        return cls(status=ResultStatus.EMPTY, coverage=coverage or [], message=message)

    @property
    def available(self) -> bool:
        return self.status != ResultStatus.UNAVAILABLE

    @property
    def is_partial(self) -> bool:
        return any(c.is_partial for c in self.coverage)

    def __iter__(self) -> Iterator[MatchResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, index):
        return self.results[index]
