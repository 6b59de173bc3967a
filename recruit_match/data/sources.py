"""
Corpus sources: read-only access to the entity lists the engine matches.

A source returns raw records; ``load_corpus`` turns them into corpus
entries. Pagination and filtering are the caller's business, a source only
applies an upper bound on how many records it returns.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from recruit_match.data.database import DatabaseManager, get_database_manager
from recruit_match.data.models import CorpusEntry, load_corpus
from recruit_match.utils.config import get_settings
from recruit_match.utils.constants import EntityKind
from recruit_match.utils.logger import get_logger

logger = get_logger(__name__)


class CorpusSource(ABC):
    """Abstract read-only source of entity records of one kind."""

    def __init__(self, kind: EntityKind | str):
        self.kind = EntityKind(kind)

    @abstractmethod
    async def fetch(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        """Fetch up to ``limit`` raw records."""
        pass

    async def load(self, limit: Optional[int] = None) -> list[CorpusEntry]:
        """Fetch records and convert them to corpus entries."""
        records = await self.fetch(limit)
        entries = load_corpus(self.kind, records)
        logger.debug(f"Loaded {len(entries)}/{len(records)} {self.kind.value} entries")
        return entries


class StaticCorpusSource(CorpusSource):
    """Source backed by records already in memory."""

    def __init__(self, kind: EntityKind | str, records: list[dict[str, Any]]):
        super().__init__(kind)
        self._records = list(records)

    async def fetch(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        if limit is None:
            return list(self._records)
        return self._records[:limit]


class JsonFileCorpusSource(CorpusSource):
    """Source reading a JSON array of records from a file."""

    def __init__(self, kind: EntityKind | str, path: Path):
        super().__init__(kind)
        self.path = Path(path)

    async def fetch(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        with open(self.path, encoding="utf-8") as f:
            payload = json.load(f)

        # Accept paged API responses ({"content": [...]}) as well as bare arrays
        if isinstance(payload, dict):
            payload = payload.get("content", [])
        if not isinstance(payload, list):
            raise ValueError(f"{self.path} does not contain a list of records")

        records = [r for r in payload if isinstance(r, dict)]
        return records if limit is None else records[:limit]


class MongoCorpusSource(CorpusSource):
    """Source listing documents from a MongoDB collection."""

    def __init__(
        self,
        kind: EntityKind | str,
        collection_name: Optional[str] = None,
        db_manager: Optional[DatabaseManager] = None,
        collection: Any = None,
    ):
        """
        Args:
            kind: Entity kind stored in the collection.
            collection_name: Collection to read. Defaults to the kind's name.
            db_manager: Database manager. Defaults to the global one.
            collection: Pre-resolved async collection (overrides the above).
        """
        super().__init__(kind)
        self.collection_name = collection_name or self.kind.value
        self._db_manager = db_manager
        self._collection = collection

    def _get_collection(self) -> Any:
        if self._collection is None:
            manager = self._db_manager or get_database_manager()
            self._collection = manager.get_collection(self.collection_name)
        return self._collection

    async def fetch(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        limit = limit or get_settings().matching.corpus_fetch_limit
        cursor = self._get_collection().find({}).limit(limit)
        return await cursor.to_list(length=limit)
