"""
Semantic matching service.

Composes the embedding provider, the vector cache and the similarity
primitives into the three matching operations:

- ``ensure_built``: embed a corpus into the cache for one source
- ``search``: rank one source against a free-text query
- ``match_across``: rank every pair between two sources

Builds for the same source and corpus are single-flight, run through a
small bounded worker pool and can be cancelled. Ranking never raises into
the caller for model or corpus problems; the returned ``RankedResults``
carries the status and how much of each corpus took part.
"""

import asyncio
import hashlib
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np

from recruit_match.core.exceptions import EmbeddingFailedError, ModelUnavailableError
from recruit_match.data.models import (
    CorpusEntry,
    Coverage,
    PairMatch,
    QueryMatch,
    RankedResults,
    demo_corpus,
    load_corpus,
)
from recruit_match.ml.embeddings import (
    EmbeddingProvider,
    Scored,
    VectorCache,
    cosine_matrix,
    get_embedding_provider,
    top_k,
)
from recruit_match.utils.config import get_settings
from recruit_match.utils.constants import (
    SOURCE_CANDIDATES,
    SOURCE_CLIENTS,
    SOURCE_DEMO,
    SOURCE_JOBS,
    AuditAction,
    BuildState,
    EntityKind,
    ResultStatus,
)
from recruit_match.utils.logger import LoggerMixin, audit_log


def corpus_fingerprint(entries: Iterable[CorpusEntry]) -> str:
    """Identity of a corpus: its ids and texts, in order."""
    digest = hashlib.sha256()
    for entry in entries:
        digest.update(entry.id.encode("utf-8"))
        digest.update(b"\x00")
        digest.update(entry.text_hash.encode("ascii"))
        digest.update(b"\x01")
    return digest.hexdigest()


class CancellationToken:
    """Tells build workers to stop taking new entries."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class BuildHandle:
    """An in-flight build of one corpus for one source."""

    source: str
    fingerprint: str
    token: CancellationToken
    generation: int = 0
    task: Optional[asyncio.Future] = None
    failed_ids: list[str] = field(default_factory=list)


class MatchingService(LoggerMixin):
    """
    Orchestrates corpus builds and similarity ranking.

    Owns the in-memory corpus of every source it has been asked to build.
    """

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        cache: Optional[VectorCache] = None,
        concurrency: Optional[int] = None,
        default_top_k: Optional[int] = None,
    ):
        """
        Initialize the service.

        Args:
            provider: Embedding provider. Defaults to the shared provider.
            cache: Vector cache. Defaults to a cache tagged with the
                  provider's model.
            concurrency: Embedding workers per build. Defaults to config.
            default_top_k: Result count when ``k`` is omitted. Defaults to config.
        """
        settings = get_settings()
        self.provider = provider or get_embedding_provider()
        self.cache = cache or VectorCache(
            model_name=self.provider.model_name,
            dimension=self.provider.dimension,
        )
        self.concurrency = concurrency or settings.matching.build_concurrency
        self.default_top_k = default_top_k or settings.matching.default_top_k

        self._corpora: dict[str, list[CorpusEntry]] = {}
        self._builds: dict[str, list[BuildHandle]] = {}
        self._ready: set[str] = set()
        self._unavailable: Optional[ModelUnavailableError] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def build_state(self, source: str) -> BuildState:
        """Current build state of ``source``."""
        if self._builds.get(source):
            return BuildState.BUILDING
        if source in self._ready:
            return BuildState.READY
        return BuildState.UNBUILT

    def corpus(self, source: str) -> list[CorpusEntry]:
        """Entries last handed to ``ensure_built`` for ``source``."""
        return list(self._corpora.get(source, []))

    def _resolve(self, source: str, entries: list[CorpusEntry]) -> list[CorpusEntry]:
        """Entries whose cached vector matches their current text."""
        resolved = []
        for entry in entries:
            vector = self.cache.get(source, entry.id, entry.text_hash)
            if vector is None:
                continue
            entry.vector = vector
            resolved.append(entry)
        return resolved

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    async def ensure_built(self, source: str, corpus: Iterable[CorpusEntry]) -> None:
        """
        Make sure every entry of ``corpus`` has a cached vector for ``source``.

        Joins an in-flight build of the same corpus instead of starting a
        second one. Cancelling the caller does not cancel the build; use
        ``cancel_build`` for that.
        """
        entries = list(corpus)
        self._corpora[source] = entries
        fingerprint = corpus_fingerprint(entries)

        for handle in self._builds.get(source, []):
            if handle.fingerprint == fingerprint and not handle.token.cancelled:
                self.logger.debug(f"Joining in-flight build for '{source}'")
                await asyncio.shield(handle.task)
                return

        handle = BuildHandle(
            source=source,
            fingerprint=fingerprint,
            token=CancellationToken(),
            generation=self.cache.generation(source),
        )
        handle.task = asyncio.ensure_future(self._build(handle, entries))
        self._builds.setdefault(source, []).append(handle)
        handle.task.add_done_callback(lambda t: self._build_finished(handle, t))

        await asyncio.shield(handle.task)

    async def _build(self, handle: BuildHandle, entries: list[CorpusEntry]) -> bool:
        """Embed ``entries`` into the cache. Returns True when every entry was processed."""
        source = handle.source
        missing = [e for e in entries if self.cache.get(source, e.id, e.text_hash) is None]
        if not missing:
            # Fully cached (or empty): no model needed
            self._resolve(source, entries)
            self._flush(source, handle.generation)
            audit_log(
                AuditAction.CORPUS_BUILT.value,
                {"source": source, "entries": len(entries), "cached": len(entries), "failed": 0},
            )
            return True

        try:
            model = await self.provider.acquire()
        except ModelUnavailableError as e:
            self._unavailable = e
            self.logger.error(f"Cannot build '{source}': {e}")
            audit_log(AuditAction.MODEL_UNAVAILABLE.value, {"source": source, "model": e.model_name}, "MODEL")
            return False

        self._unavailable = None
        self.cache.bind_model(model.model_name, model.dimension)

        async def embed(text: str) -> np.ndarray:
            return await self.provider.embed(text, model=model)

        queue: asyncio.Queue[CorpusEntry] = asyncio.Queue()
        for entry in entries:
            queue.put_nowait(entry)

        async def worker() -> None:
            while not handle.token.cancelled:
                try:
                    entry = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    entry.vector = await self.cache.get_or_compute(source, entry.id, entry.text, embed)
                except EmbeddingFailedError as e:
                    error = e if e.entry_id is not None else EmbeddingFailedError(entry.id, e.reason)
                    handle.failed_ids.append(entry.id)
                    self.logger.warning(f"Skipping '{source}': {error}")

        workers = [asyncio.ensure_future(worker()) for _ in range(min(self.concurrency, len(entries)))]
        try:
            await asyncio.gather(*workers)
        finally:
            for w in workers:
                w.cancel()
            self._flush(source, handle.generation)

        completed = not handle.token.cancelled
        audit_log(
            AuditAction.CORPUS_BUILT.value if completed else AuditAction.BUILD_CANCELLED.value,
            {
                "source": source,
                "entries": len(entries),
                "cached": self.cache.size(source),
                "failed": len(handle.failed_ids),
            },
        )
        return completed

    def _flush(self, source: str, generation: Optional[int] = None) -> None:
        try:
            self.cache.flush(source, generation)
        except OSError as e:
            self.logger.error(f"Could not persist vector cache for '{source}': {e}")

    def _build_finished(self, handle: BuildHandle, task: asyncio.Future) -> None:
        handles = self._builds.get(handle.source, [])
        if handle in handles:
            handles.remove(handle)
        if not handles:
            self._builds.pop(handle.source, None)

        if task.cancelled():
            self.logger.warning(f"Build for '{handle.source}' was cancelled")
        elif task.exception() is not None:
            self.logger.error(f"Build for '{handle.source}' failed: {task.exception()}")
        elif task.result():
            self._ready.add(handle.source)

    def cancel_build(self, source: str) -> int:
        """
        Stop in-flight builds of ``source`` from taking new entries.

        Embeddings already running still complete and are cached.

        Returns:
            Number of builds signalled.
        """
        handles = self._builds.get(source, [])
        for handle in handles:
            handle.token.cancel()
        if handles:
            self.logger.info(f"Cancelling {len(handles)} build(s) for '{source}'")
        return len(handles)

    def clear_cache(self, source: str) -> None:
        """Forget ``source`` entirely: cached vectors, corpus and build state."""
        self.cancel_build(source)
        self.cache.clear(source)
        self._corpora.pop(source, None)
        self._ready.discard(source)
        audit_log(AuditAction.CACHE_CLEARED.value, {"source": source}, "CACHE")

    async def close(self) -> None:
        """Cancel builds, wait for them to wind down and release the model."""
        pending = []
        for source in list(self._builds):
            self.cancel_build(source)
            pending.extend(h.task for h in self._builds.get(source, []) if h.task)
        if pending:
            await asyncio.wait(pending)
        self.provider.dispose()

    # -------------------------------------------------------------------------
    # Ranking
    # -------------------------------------------------------------------------

    async def search(self, query_text: str, source: str, k: Optional[int] = None) -> RankedResults:
        """
        Rank the entries of ``source`` against a free-text query.

        The query is embedded fresh, never cached.
        """
        k = self.default_top_k if k is None else k
        entries = self._corpora.get(source, [])
        if not query_text or not query_text.strip():
            return RankedResults.empty("Query is empty")
        if not entries:
            return RankedResults.empty(f"No entries for '{source}'", [Coverage(source, 0, 0)])

        try:
            model = await self.provider.acquire()
        except ModelUnavailableError as e:
            self._unavailable = e
            self.logger.error(f"Search unavailable: {e}")
            return RankedResults.unavailable("Match engine unavailable")
        self._unavailable = None
        self.cache.bind_model(model.model_name, model.dimension)

        resolved = self._resolve(source, entries)
        coverage = [Coverage(source, len(resolved), len(entries))]
        if not resolved:
            return RankedResults.empty(f"No embedded entries for '{source}'", coverage)

        try:
            query_vector = await self.provider.embed(query_text, model=model)
        except EmbeddingFailedError as e:
            self.logger.warning(f"Query could not be embedded: {e}")
            return RankedResults.unavailable("Query could not be embedded", coverage)

        scores = cosine_matrix(query_vector, np.vstack([e.vector for e in resolved]))[0]
        results = top_k(
            (
                Scored(QueryMatch(id=e.id, score=float(s), text=e.text), float(s), e.id)
                for e, s in zip(resolved, scores)
            ),
            k,
        )

        audit_log(AuditAction.SEARCH_RANKED.value, {"source": source, "k": k, "returned": len(results)})
        return self._ranked(results, coverage)

    async def match_across(self, source_a: str, source_b: str, k: Optional[int] = None) -> RankedResults:
        """
        Rank every pair between two sources and keep the global top ``k``.

        Entries without a current cached vector are left out of the pairing
        and counted in the coverage.
        """
        k = self.default_top_k if k is None else k
        left = self._corpora.get(source_a, [])
        right = self._corpora.get(source_b, [])

        resolved_left = self._resolve(source_a, left)
        resolved_right = self._resolve(source_b, right)
        coverage = [
            Coverage(source_a, len(resolved_left), len(left)),
            Coverage(source_b, len(resolved_right), len(right)),
        ]

        if not left or not right:
            return RankedResults.empty("One or both corpora are empty", coverage)
        if not resolved_left or not resolved_right:
            if self._unavailable is not None:
                return RankedResults.unavailable("Match engine unavailable", coverage)
            return RankedResults.empty("No embedded entries to compare", coverage)

        scores = cosine_matrix(
            np.vstack([e.vector for e in resolved_left]),
            np.vstack([e.vector for e in resolved_right]),
        )
        scored = []
        for i, left_entry in enumerate(resolved_left):
            for j, right_entry in enumerate(resolved_right):
                score = float(scores[i, j])
                match = PairMatch(left_id=left_entry.id, right_id=right_entry.id, score=score)
                scored.append(Scored(match, score, (left_entry.id, right_entry.id)))
        results = top_k(scored, k)

        audit_log(
            AuditAction.PAIRS_RANKED.value,
            {"left": source_a, "right": source_b, "k": k, "returned": len(results)},
        )
        return self._ranked(results, coverage)

    @staticmethod
    def _ranked(results: list, coverage: list[Coverage]) -> RankedResults:
        if not results:
            return RankedResults.empty("No results", coverage)
        partial = any(c.is_partial for c in coverage)
        message = "Partial coverage" if partial else ""
        return RankedResults(results=results, status=ResultStatus.OK, coverage=coverage, message=message)

    # -------------------------------------------------------------------------
    # Use cases
    # -------------------------------------------------------------------------

    async def rediscover(
        self,
        candidates: list[dict[str, Any]],
        jobs: list[dict[str, Any]],
        k: Optional[int] = None,
    ) -> RankedResults:
        """Best candidate/job pairs across the current candidate and job lists."""
        await asyncio.gather(
            self.ensure_built(SOURCE_CANDIDATES, load_corpus(EntityKind.CANDIDATE, candidates)),
            self.ensure_built(SOURCE_JOBS, load_corpus(EntityKind.JOB, jobs)),
        )
        return await self.match_across(SOURCE_CANDIDATES, SOURCE_JOBS, k)

    async def suggest_talent_pool(
        self,
        clients: list[dict[str, Any]],
        candidates: list[dict[str, Any]],
        k: Optional[int] = None,
    ) -> RankedResults:
        """Best client/candidate pairs for talent-pool suggestions."""
        await asyncio.gather(
            self.ensure_built(SOURCE_CLIENTS, load_corpus(EntityKind.CLIENT, clients)),
            self.ensure_built(SOURCE_CANDIDATES, load_corpus(EntityKind.CANDIDATE, candidates)),
        )
        return await self.match_across(SOURCE_CLIENTS, SOURCE_CANDIDATES, k)

    async def semantic_search(
        self,
        query_text: str,
        source: str = SOURCE_DEMO,
        records: Optional[list[dict[str, Any]]] = None,
        k: Optional[int] = None,
    ) -> RankedResults:
        """
        Build ``source`` and search it.

        Args:
            query_text: Free-text description of the wanted candidate or job.
            source: "demo", "candidates", "jobs" or "clients".
            records: Raw entity records for non-demo sources. When omitted
                    the corpus already built for ``source`` is searched.
            k: Number of results.
        """
        if source == SOURCE_DEMO:
            await self.ensure_built(source, demo_corpus())
        elif records is not None:
            await self.ensure_built(source, load_corpus(EntityKind(source), records))

        return await self.search(query_text, source, k)


# Singleton instance
_matching_service: Optional[MatchingService] = None


def get_matching_service() -> MatchingService:
    """Get the matching service singleton instance."""
    global _matching_service
    if _matching_service is None:
        _matching_service = MatchingService()
    return _matching_service
