"""
Motor connection holder.

The application lifespan owns exactly one ``MongoDB``; services receive
``mongo.db`` in their constructors and never reach for a global.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


def redact_uri(uri: str) -> str:
    """Drop the userinfo part of a connection string before it is logged."""
    scheme, sep, rest = uri.partition("://")
    if not sep:
        return uri
    return f"{scheme}://{rest.rsplit('@', 1)[-1]}"


class MongoDB:
    """One Motor client bound to one database."""

    def __init__(self):
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    async def connect(
        self,
        uri: str,
        database_name: str,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        """
        Open the client and ping the deployment so a bad URI fails at startup
        rather than on the first request.
        """
        logger.info(f"Connecting to MongoDB at {redact_uri(uri)} (database: {database_name})")

        client = AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            tz_aware=True,
        )
        try:
            await client.admin.command("ping")
        except Exception as e:
            client.close()
            logger.error(f"MongoDB ping failed: {e}")
            raise

        self._client = client
        self._db = client[database_name]
        logger.info(f"MongoDB ready: {database_name}")

    async def disconnect(self) -> None:
        if self._client is None:
            return
        self._client.close()
        logger.info(f"MongoDB connection to {self._db.name} closed")
        self._client = None
        self._db = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("MongoDB is not connected")
        return self._db
