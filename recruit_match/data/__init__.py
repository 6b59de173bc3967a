"""
Data layer for recruit-match.

Read-only access to the entities the engine matches.

Submodules:
- database: MongoDB connection management
- models: Profiles, corpus entries and match results
- sources: Corpus sources (in-memory, JSON file, MongoDB)
"""

from .database import DatabaseManager, get_database_manager
from .sources import (
    CorpusSource,
    JsonFileCorpusSource,
    MongoCorpusSource,
    StaticCorpusSource,
)

__all__ = [
    "DatabaseManager",
    "get_database_manager",
    "CorpusSource",
    "JsonFileCorpusSource",
    "MongoCorpusSource",
    "StaticCorpusSource",
]
