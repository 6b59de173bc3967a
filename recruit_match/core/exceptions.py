"""Exceptions raised by the matching engine."""

from typing import Optional


class MatchingError(Exception):
    """Base class for matching engine errors."""


class ModelUnavailableError(MatchingError):
    """The embedding model could not be loaded."""

    def __init__(self, model_name: str, reason: Optional[BaseException] = None):
        self.model_name = model_name
        self.reason = reason
        message = f"Embedding model unavailable: {model_name}"
        if reason is not None:
            message += f" ({reason})"
        super().__init__(message)


class EmbeddingFailedError(MatchingError):
    """A single text could not be embedded."""

    def __init__(self, entry_id: Optional[str], reason: Optional[BaseException] = None):
        self.entry_id = entry_id
        self.reason = reason
        target = f"entry {entry_id}" if entry_id else "text"
        message = f"Failed to embed {target}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class CacheCorruptError(MatchingError):
    """A persisted cache payload could not be parsed."""

    def __init__(self, source: str, reason: Optional[BaseException] = None):
        self.source = source
        self.reason = reason
        super().__init__(f"Vector cache for '{source}' is corrupt: {reason}")
