"""
Persisted vector cache for corpus embeddings.

Vectors are stored per corpus source, keyed by entity id, together with the
hash of the text that produced them. A vector whose stored hash no longer
matches the entity's current text is treated as missing and recomputed.

Each source is persisted as one JSON document named after the source::

    {
        "version": {"model": "<model name>", "dimension": 384},
        "entries": {"<id>": {"hash": "<sha256>", "vector": [...]}}
    }

A document written for another model or dimension is ignored, as is one
that cannot be parsed; both start the source from an empty cache.
"""

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import numpy as np

from recruit_match.core.exceptions import CacheCorruptError
from recruit_match.data.models import CachedVector, text_hash
from recruit_match.utils.config import get_settings
from recruit_match.utils.logger import LoggerMixin

EmbedFunction = Callable[[str], Awaitable[np.ndarray]]


class VectorCache(LoggerMixin):
    """
    Per-source mapping from entity id to its embedding.

    ``get_or_compute`` is the only mutation path. ``flush`` writes a whole
    source to disk and is meant to be called once per batch.
    """

    def __init__(
        self,
        persist_directory: Optional[Path] = None,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        key_prefix: Optional[str] = None,
    ):
        """
        Initialize the cache. Nothing is read from disk until a source is used.

        Args:
            persist_directory: Directory holding one JSON file per source.
            model_name: Model the vectors belong to (version tag).
            dimension: Vector length (version tag).
            key_prefix: File name prefix for every source.
        """
        settings = get_settings()
        self.persist_directory = Path(persist_directory or settings.vector_cache.persist_directory)
        self.key_prefix = key_prefix or settings.vector_cache.key_prefix
        self.model_name = model_name or settings.ml.embedding_model
        self.dimension = dimension or settings.ml.embedding_dimension

        self._stores: dict[str, dict[str, CachedVector]] = {}
        self._inflight: dict[tuple[str, str, str, int], asyncio.Future] = {}
        self._generations: dict[str, int] = {}
        self.compute_count = 0
        self.hit_count = 0

    @property
    def version(self) -> dict[str, Any]:
        """Version tag written alongside the vectors."""
        return {"model": self.model_name, "dimension": self.dimension}

    def bind_model(self, model_name: str, dimension: int) -> None:
        """
        Align the cache with the model actually loaded.

        Vectors held in memory for a different model are dropped.
        """
        if model_name == self.model_name and dimension == self.dimension:
            return
        self.logger.warning(
            f"Vector cache rebound from {self.model_name}/{self.dimension} "
            f"to {model_name}/{dimension}; cached vectors discarded"
        )
        self.model_name = model_name
        self.dimension = dimension
        self._stores.clear()

    def generation(self, source: str) -> int:
        """
        Number of times ``source`` has been cleared.

        Writes started under an older generation are discarded.
        """
        return self._generations.get(source, 0)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def path_for(self, source: str) -> Path:
        """File holding the vectors of ``source``."""
        safe_source = re.sub(r"[^A-Za-z0-9_.-]", "_", source)
        return self.persist_directory / f"{self.key_prefix}.{safe_source}.json"

    def _store(self, source: str) -> dict[str, CachedVector]:
        """In-memory map for ``source``, loaded from disk on first use."""
        store = self._stores.get(source)
        if store is None:
            try:
                store = self._load(source)
            except CacheCorruptError as e:
                self.logger.warning(f"{e}; rebuilding from scratch")
                store = {}
            self._stores[source] = store
        return store

    def _load(self, source: str) -> dict[str, CachedVector]:
        path = self.path_for(source)
        if not path.exists():
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorruptError(source, e) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("entries"), dict):
            raise CacheCorruptError(source, ValueError("missing 'entries' mapping"))

        if payload.get("version") != self.version:
            self.logger.info(
                f"Ignoring vector cache for '{source}': written for "
                f"{payload.get('version')}, current {self.version}"
            )
            return {}

        store: dict[str, CachedVector] = {}
        for entry_id, record in payload["entries"].items():
            try:
                vector = np.asarray(record["vector"], dtype=np.float32)
                digest = str(record["hash"])
            except (KeyError, TypeError, ValueError) as e:
                raise CacheCorruptError(source, e) from e
            if vector.shape != (self.dimension,):
                raise CacheCorruptError(
                    source, ValueError(f"entry {entry_id} has shape {vector.shape}")
                )
            store[entry_id] = CachedVector(text_hash=digest, vector=vector)

        self.logger.debug(f"Loaded {len(store)} cached vectors for '{source}'")
        return store

    def flush(self, source: str, generation: Optional[int] = None) -> None:
        """
        Persist the in-memory map for ``source``.

        The file is replaced atomically. With ``generation``, nothing is
        written if the source has been cleared since.

        Raises:
            OSError: If the file could not be written.
        """
        if generation is not None and generation != self.generation(source):
            self.logger.debug(f"Skipping flush of '{source}': cleared since generation {generation}")
            return

        store = self._store(source)
        payload = {
            "version": self.version,
            "entries": {
                entry_id: {"hash": cached.text_hash, "vector": cached.vector.tolist()}
                for entry_id, cached in store.items()
            },
        }

        self.persist_directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(source)
        fd, tmp_name = tempfile.mkstemp(dir=self.persist_directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.logger.debug(f"Flushed {len(store)} vectors for '{source}' to {path}")

    # -------------------------------------------------------------------------
    # Lookup and mutation
    # -------------------------------------------------------------------------

    def get(self, source: str, entry_id: str, text_hash: Optional[str] = None) -> Optional[np.ndarray]:
        """
        Cached vector for ``entry_id``.

        With ``text_hash``, a vector computed from different text is treated
        as missing.
        """
        cached = self._store(source).get(entry_id)
        if cached is None:
            return None
        if text_hash is not None and cached.text_hash != text_hash:
            return None
        return cached.vector

    async def get_or_compute(
        self,
        source: str,
        entry_id: str,
        text: str,
        embed_fn: EmbedFunction,
    ) -> np.ndarray:
        """
        Cached vector for ``entry_id`` if it matches ``text``, else compute it.

        Concurrent calls for the same id and text share one computation. The
        computation finishes and lands in the cache even if every caller
        stops waiting for it, unless the source is cleared meanwhile.

        Raises:
            Whatever ``embed_fn`` raises.
        """
        digest = text_hash(text)
        cached = self.get(source, entry_id, digest)
        if cached is not None:
            self.hit_count += 1
            return cached

        generation = self.generation(source)
        key = (source, entry_id, digest, generation)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._compute(source, entry_id, digest, text, embed_fn, generation)
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish(key, t))

        return await asyncio.shield(task)

    async def _compute(
        self,
        source: str,
        entry_id: str,
        digest: str,
        text: str,
        embed_fn: EmbedFunction,
        generation: int,
    ) -> np.ndarray:
        vector = np.asarray(await embed_fn(text), dtype=np.float32).reshape(-1)
        if generation != self.generation(source):
            self.logger.debug(f"Discarding vector for {source}/{entry_id}: source was cleared")
            return vector
        self._store(source)[entry_id] = CachedVector(text_hash=digest, vector=vector)
        self.compute_count += 1
        return vector

    def _finish(self, key: tuple[str, str, str, int], task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome as retrieved; callers that stayed see it themselves
        if not task.cancelled():
            task.exception()

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def size(self, source: str) -> int:
        """Number of vectors cached for ``source``."""
        return len(self._store(source))

    def sources(self) -> list[str]:
        """Sources known in memory or on disk."""
        known = set(self._stores)
        prefix = f"{self.key_prefix}."
        if self.persist_directory.exists():
            for path in self.persist_directory.glob(f"{prefix}*.json"):
                known.add(path.name[len(prefix):-len(".json")])
        return sorted(known)

    def clear(self, source: str) -> None:
        """Drop every vector of ``source`` from memory and disk."""
        self._generations[source] = self.generation(source) + 1
        self._stores.pop(source, None)
        self.path_for(source).unlink(missing_ok=True)
        self.logger.info(f"Cleared vector cache for '{source}'")
