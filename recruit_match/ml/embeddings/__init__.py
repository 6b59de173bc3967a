"""
Text embedding, vector caching and similarity ranking.

Components:
- EmbeddingProvider: Lazily loaded sentence-transformers model
- VectorCache: Per-source persisted vectors keyed by entity id and text hash
- cosine / top_k: Pure similarity ranking primitives
"""

from .embedding_model import (
    EmbeddingModel,
    EmbeddingProvider,
    get_embedding_provider,
    load_sentence_transformer,
)

from .vector_cache import VectorCache

from .similarity import (
    Scored,
    cosine,
    cosine_matrix,
    top_k,
)

__all__ = [
    # Embedding model
    "EmbeddingModel",
    "EmbeddingProvider",
    "get_embedding_provider",
    "load_sentence_transformer",
    # Vector cache
    "VectorCache",
    # Similarity
    "Scored",
    "cosine",
    "cosine_matrix",
    "top_k",
]
