"""
Shared test fixtures for the recruit-match test suite.

Sets environment variables before any package imports, then provides a
deterministic bag-of-words stand-in for the sentence-transformers model and
factory fixtures for providers, caches and services built on it.
"""

import os

# === Set environment BEFORE any recruit_match imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("ML_DEVICE", "cpu")

import hashlib
import re
import threading
from typing import Any, Callable, Optional

import numpy as np
import pytest

from recruit_match.core.matching import MatchingService
from recruit_match.data.models import CorpusEntry
from recruit_match.ml.embeddings import EmbeddingProvider, VectorCache


FAKE_MODEL_NAME = "fake/bag-of-words"
FAKE_DIMENSION = 64

# Known words get their own dimension; anything else is hashed into the rest
VOCABULARY = [
    "senior", "react", "engineer", "typescript", "vite", "backend", "node",
    "postgresql", "kafka", "machine", "learning", "transformers", "onnx",
    "python", "django", "java", "sales", "marketing", "fintech", "banking",
    "nurse", "hospital", "designer", "figma",
]
SYNONYMS = {"developer": "engineer", "programmer": "engineer", "js": "node"}
STOPWORDS = {
    "a", "an", "and", "the", "with", "in", "of", "for", "to", "needed",
    "experienced", "experience", "familiar",
}


def tokenize(text: str) -> list[str]:
    words = re.findall(r"[a-z0-9]+", text.lower())
    return [SYNONYMS.get(w, w) for w in words if w not in STOPWORDS]


class FakeSentenceModel:
    """Deterministic stand-in for SentenceTransformer."""

    def __init__(
        self,
        dimension: int = FAKE_DIMENSION,
        fail_on: Optional[str] = None,
        gate: Optional[threading.Event] = None,
    ):
        self.dimension = dimension
        self.fail_on = fail_on
        self.gate = gate
        self.calls: list[str] = []
        self.started = 0
        self._lock = threading.Lock()

    def get_sentence_embedding_dimension(self) -> int:
        return self.dimension

    def _index(self, token: str) -> int:
        if token in VOCABULARY:
            return VOCABULARY.index(token)
        spare = self.dimension - len(VOCABULARY)
        digest = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16)
        return len(VOCABULARY) + digest % spare

    def encode(self, text: str, normalize_embeddings: bool = True, **kwargs: Any) -> np.ndarray:
        with self._lock:
            self.started += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"cannot embed {text!r}")

        vector = np.zeros(self.dimension, dtype=np.float32)
        for token in tokenize(text):
            vector[self._index(token)] += 1.0
        if normalize_embeddings:
            norm = np.linalg.norm(vector)
            if norm > 0:
                vector = vector / norm

        with self._lock:
            self.calls.append(text)
        return vector


# ---------------------------------------------------------------------------
# Model and provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_entries():
    """Factory building corpus entries from (id, text) pairs."""

    def _factory(*pairs: tuple[str, str]) -> list[CorpusEntry]:
        return [CorpusEntry(id=entry_id, text=text) for entry_id, text in pairs]

    return _factory


@pytest.fixture
def fake_model():
    return FakeSentenceModel()


@pytest.fixture
def make_provider():
    """Factory building an EmbeddingProvider around a given loader."""

    def _factory(loader: Callable[[str, str], Any], **kwargs: Any) -> EmbeddingProvider:
        return EmbeddingProvider(
            model_name=FAKE_MODEL_NAME,
            device="cpu",
            loader=loader,
            **kwargs,
        )

    return _factory


@pytest.fixture
def provider(make_provider, fake_model):
    return make_provider(lambda name, device: fake_model)


@pytest.fixture
def failing_provider(make_provider):
    def _loader(name: str, device: str) -> Any:
        raise RuntimeError("model download failed")

    return make_provider(_loader)


# ---------------------------------------------------------------------------
# Cache and service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "vectors"


@pytest.fixture
def make_cache(cache_dir):
    """Factory returning a fresh VectorCache over the shared test directory."""

    def _factory(**kwargs: Any) -> VectorCache:
        kwargs.setdefault("persist_directory", cache_dir)
        kwargs.setdefault("model_name", FAKE_MODEL_NAME)
        kwargs.setdefault("dimension", FAKE_DIMENSION)
        return VectorCache(**kwargs)

    return _factory


@pytest.fixture
def cache(make_cache):
    return make_cache()


@pytest.fixture
def make_service(make_cache):
    """Factory building a MatchingService for a provider."""

    def _factory(provider: EmbeddingProvider, cache: Optional[VectorCache] = None, **kwargs: Any) -> MatchingService:
        kwargs.setdefault("concurrency", 2)
        kwargs.setdefault("default_top_k", 50)
        return MatchingService(provider=provider, cache=cache or make_cache(), **kwargs)

    return _factory


@pytest.fixture
def service(make_service, provider, cache):
    return make_service(provider, cache)
