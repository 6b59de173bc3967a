"""
Read-only MongoDB access for corpus sources.

The matching engine never writes entity data. It only lists the current
candidates, jobs and clients through an asynchronous (Motor) client.
"""

from typing import Any, Optional
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from recruit_match.utils.config import DatabaseSettings, get_settings
from recruit_match.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Manages the asynchronous MongoDB client used by corpus sources."""

    def __init__(self, settings: Optional[DatabaseSettings] = None) -> None:
        self._settings = settings or get_settings().database
        self._db_name = self._settings.name
        self._uri = self._build_uri()
        self._client: Optional[AsyncIOMotorClient] = None

    def _build_uri(self) -> str:
        """
        Build MongoDB connection URI from settings.

        Credentials are URL-encoded so special characters survive.
        """
        host = self._settings.host.strip()
        if not host or any(c in host for c in [";", "&", "|", "$", "`"]):
            raise ValueError(f"Invalid database host: {host}")

        auth = ""
        if self._settings.username and self._settings.password:
            auth = f"{quote_plus(self._settings.username)}:{quote_plus(self._settings.password)}@"

        return f"mongodb://{auth}{host}:{self._settings.port}"

    def get_client(self) -> AsyncIOMotorClient:
        """Get or create the asynchronous MongoDB client."""
        if self._client is None:
            logger.info("Creating asynchronous MongoDB client")
            self._client = AsyncIOMotorClient(
                self._uri,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
            )
        return self._client

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get asynchronous database instance."""
        return self.get_client()[self._db_name]

    def get_collection(self, collection_name: str) -> Any:
        """Get an asynchronous collection by name."""
        return self.get_database()[collection_name]

    async def check_connection(self) -> bool:
        """Check if the connection is healthy."""
        try:
            await self.get_client().admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"MongoDB connection check failed: {e}")
            return False

    def close(self) -> None:
        """Close the client connection."""
        if self._client:
            logger.info("Closing asynchronous MongoDB client")
            self._client.close()
            self._client = None


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
