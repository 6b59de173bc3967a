"""
Tests for recruit_match.data.sources — corpus sources.
"""

import json

import pytest

from recruit_match.data.sources import (
    JsonFileCorpusSource,
    MongoCorpusSource,
    StaticCorpusSource,
)
from recruit_match.utils.constants import EntityKind


JOBS = [
    {"id": "j1", "title": "React engineer"},
    {"id": "j2", "title": "Backend engineer"},
    {"id": "j3", "title": "Machine learning engineer"},
]


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents
        self.limit_value = None

    def limit(self, n):
        self.limit_value = n
        return self

    async def to_list(self, length=None):
        return self._documents[: self.limit_value or length]


class FakeCollection:
    def __init__(self, documents):
        self._documents = documents
        self.queries = []
        self.cursor = None

    def find(self, query):
        self.queries.append(query)
        self.cursor = FakeCursor(self._documents)
        return self.cursor


class TestStaticCorpusSource:
    @pytest.mark.asyncio
    async def test_load_all(self):
        source = StaticCorpusSource(EntityKind.JOB, JOBS)
        entries = await source.load()
        assert [e.id for e in entries] == ["j1", "j2", "j3"]

    @pytest.mark.asyncio
    async def test_limit(self):
        source = StaticCorpusSource("jobs", JOBS)
        entries = await source.load(limit=2)
        assert [e.id for e in entries] == ["j1", "j2"]


class TestJsonFileCorpusSource:
    @pytest.mark.asyncio
    async def test_bare_array(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps(JOBS), encoding="utf-8")

        entries = await JsonFileCorpusSource(EntityKind.JOB, path).load()
        assert [e.text for e in entries] == [
            "React engineer",
            "Backend engineer",
            "Machine learning engineer",
        ]

    @pytest.mark.asyncio
    async def test_paged_response(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps({"content": JOBS, "totalElements": 3}), encoding="utf-8")

        entries = await JsonFileCorpusSource(EntityKind.JOB, path).load(limit=1)
        assert [e.id for e in entries] == ["j1"]

    @pytest.mark.asyncio
    async def test_non_dict_items_ignored(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text(json.dumps([JOBS[0], "junk", 3]), encoding="utf-8")

        entries = await JsonFileCorpusSource(EntityKind.JOB, path).load()
        assert [e.id for e in entries] == ["j1"]

    @pytest.mark.asyncio
    async def test_scalar_payload_raises(self, tmp_path):
        path = tmp_path / "jobs.json"
        path.write_text("42", encoding="utf-8")

        with pytest.raises(ValueError):
            await JsonFileCorpusSource(EntityKind.JOB, path).fetch()


class TestMongoCorpusSource:
    @pytest.mark.asyncio
    async def test_lists_collection(self):
        collection = FakeCollection(JOBS)
        source = MongoCorpusSource(EntityKind.JOB, collection=collection)

        entries = await source.load(limit=2)

        assert [e.id for e in entries] == ["j1", "j2"]
        assert collection.queries == [{}]
        assert collection.cursor.limit_value == 2

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self):
        collection = FakeCollection(JOBS)
        source = MongoCorpusSource(EntityKind.JOB, collection=collection)

        await source.fetch()

        assert collection.cursor.limit_value == 50

    def test_collection_name_defaults_to_kind(self):
        source = MongoCorpusSource(EntityKind.CANDIDATE, collection=FakeCollection([]))
        assert source.collection_name == "candidates"

    def test_collection_resolved_through_manager(self):
        class FakeManager:
            def __init__(self):
                self.requested = []

            def get_collection(self, name):
                self.requested.append(name)
                return FakeCollection([])

        manager = FakeManager()
        source = MongoCorpusSource(EntityKind.CLIENT, collection_name="companies", db_manager=manager)
        source._get_collection()
        source._get_collection()
        assert manager.requested == ["companies"]
