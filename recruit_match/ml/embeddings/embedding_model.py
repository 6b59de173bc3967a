"""
Embedding provider for generating text embeddings.

Uses the sentence-transformers library. The model is loaded lazily, once per
provider, in a worker thread so the event loop keeps running while the
weights load. Concurrent callers of ``acquire()`` share the same load.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import numpy as np

from recruit_match.core.exceptions import (
    EmbeddingFailedError,
    MatchingError,
    ModelUnavailableError,
)
from recruit_match.utils.config import get_settings
from recruit_match.utils.logger import LoggerMixin, get_logger

logger = get_logger(__name__)

# Blocking factory: (model_name, device) -> object exposing ``encode``
ModelLoader = Callable[[str, str], Any]

EmbedFunction = Callable[[str], Awaitable[np.ndarray]]


def load_sentence_transformer(model_name: str, device: str) -> Any:
    """Load a sentence-transformers model (blocking)."""
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError:
        logger.error(
            "sentence-transformers not installed. "
            "Install with: pip install sentence-transformers"
        )
        raise

    return SentenceTransformer(model_name, device=device)


class EmbeddingModel:
    """
    A loaded embedding model.

    Immutable once constructed and safe to share between any number of
    concurrent callers.
    """

    def __init__(
        self,
        model: Any,
        model_name: str,
        dimension: int,
        batch_size: int = 32,
    ):
        self._model = model
        self.model_name = model_name
        self.dimension = dimension
        self.batch_size = batch_size

    def encode(self, text: str) -> np.ndarray:
        """
        Generate a normalized embedding for ``text`` (blocking).

        Returns:
            float32 vector of shape (dimension,).
        """
        embedding = self._model.encode(
            text,
            batch_size=self.batch_size,
            show_progress_bar=False,
            normalize_embeddings=True,
            convert_to_numpy=True,
        )
        vector = np.asarray(embedding, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dimension:
            raise ValueError(
                f"Model {self.model_name} returned {vector.shape[0]} dimensions, "
                f"expected {self.dimension}"
            )
        return vector

    async def embed(self, text: str) -> np.ndarray:
        """Generate an embedding without blocking the event loop."""
        return await asyncio.to_thread(self.encode, text)


class EmbeddingProvider(LoggerMixin):
    """
    Lazily acquires the embedding model and turns text into vectors.

    ``acquire()`` is single-flight: the first call starts the load and every
    concurrent or later call awaits that same load. A failed load is not
    memoized, so a later call may try again.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        loader: Optional[ModelLoader] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the provider without loading anything.

        Args:
            model_name: Name of the sentence-transformers model to use.
                       Defaults to config setting.
            device: Device to run model on ('cpu', 'cuda', 'mps').
                   Defaults to config setting.
            loader: Blocking factory returning the raw model. Defaults to
                   sentence-transformers.
            timeout: Seconds allowed per embed call. Defaults to config
                    setting (None disables the timeout).
        """
        settings = get_settings()
        self.model_name = model_name or settings.ml.embedding_model
        self.device = device or settings.ml.device
        self.batch_size = settings.ml.batch_size
        self.timeout = timeout if timeout is not None else settings.ml.embed_timeout_seconds
        self._configured_dimension = settings.ml.embedding_dimension
        self._loader = loader or load_sentence_transformer

        self._model: Optional[EmbeddingModel] = None
        self._load_task: Optional[asyncio.Task] = None
        self.load_count = 0

    @property
    def is_ready(self) -> bool:
        """Whether the model has finished loading."""
        return self._model is not None

    @property
    def dimension(self) -> int:
        """Vector length produced by the model."""
        if self._model is not None:
            return self._model.dimension
        return self._configured_dimension

    async def init(self) -> None:
        """Eagerly load the model."""
        await self.acquire()

    async def acquire(self) -> EmbeddingModel:
        """
        Get the loaded model, starting the load if needed.

        Raises:
            ModelUnavailableError: If the model could not be loaded.
        """
        if self._model is not None:
            return self._model

        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())

        task = self._load_task
        try:
            # A cancelled caller must not cancel the load for everyone else
            return await asyncio.shield(task)
        except ModelUnavailableError:
            if self._load_task is task:
                self._load_task = None
            raise

    async def _load(self) -> EmbeddingModel:
        self.load_count += 1
        self.logger.info(f"Loading embedding model: {self.model_name}")
        try:
            raw_model = await asyncio.to_thread(self._loader, self.model_name, self.device)
        except Exception as e:
            self.logger.error(f"Failed to load embedding model {self.model_name}: {e}")
            raise ModelUnavailableError(self.model_name, e) from e

        dimension = self._configured_dimension
        get_dimension = getattr(raw_model, "get_sentence_embedding_dimension", None)
        if callable(get_dimension) and get_dimension():
            dimension = int(get_dimension())

        self._model = EmbeddingModel(
            raw_model,
            model_name=self.model_name,
            dimension=dimension,
            batch_size=self.batch_size,
        )
        self.logger.info(
            f"Embedding model loaded on device: {self.device} (dimension {dimension})"
        )
        return self._model

    async def embed(self, text: str, model: Optional[EmbeddingModel] = None) -> np.ndarray:
        """
        Embed one text.

        Args:
            text: Text to embed.
            model: Already acquired model. Acquired here when omitted.

        Raises:
            ModelUnavailableError: If the model could not be loaded.
            EmbeddingFailedError: If inference failed or timed out.
        """
        if model is None:
            model = await self.acquire()

        try:
            if self.timeout:
                return await asyncio.wait_for(model.embed(text), self.timeout)
            return await model.embed(text)
        except asyncio.TimeoutError as e:
            raise EmbeddingFailedError(None, e) from e
        except MatchingError:
            raise
        except Exception as e:
            raise EmbeddingFailedError(None, e) from e

    def dispose(self) -> None:
        """Drop the loaded model and abandon any pending load."""
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        if self._model is not None:
            self.logger.info(f"Disposing embedding model: {self.model_name}")
        self._model = None


# Singleton instance
_embedding_provider: Optional[EmbeddingProvider] = None


def get_embedding_provider() -> EmbeddingProvider:
    """Get the embedding provider singleton instance."""
    global _embedding_provider
    if _embedding_provider is None:
        _embedding_provider = EmbeddingProvider()
    return _embedding_provider
