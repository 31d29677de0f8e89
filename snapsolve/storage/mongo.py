"""MongoDB key-value store: one document per key.

Document schema::

    {
        "_id": "chat_3",
        "value": {...},
        "updated_at": "2026-02-08T11:00:00Z"
    }
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
)

from snapsolve.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class MongoKeyValueStore:
    """``KeyValueStore`` backed by a single MongoDB collection.

    Lifecycle:
        store = MongoKeyValueStore()
        await store.initialize()   # call once at startup
        ...
        await store.close()        # call once at shutdown
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings
        self._client: AsyncIOMotorClient | None = None
        self._collection: AsyncIOMotorCollection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect to MongoDB and verify the server answers."""
        if self._client is not None:
            logger.warning("MongoKeyValueStore already initialized - skipping")
            return

        logger.info("Connecting to MongoDB at %s", self._settings.mongodb_uri)
        self._client = AsyncIOMotorClient(
            self._settings.mongodb_uri,
            serverSelectionTimeoutMS=5_000,
        )
        await self._client.admin.command("ping")
        db = self._client[self._settings.mongodb_database]
        self._collection = db[self._settings.mongodb_collection]
        logger.info(
            "MongoDB key-value store ready (%s.%s)",
            self._settings.mongodb_database,
            self._settings.mongodb_collection,
        )

    async def close(self) -> None:
        """Release the connection."""
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._collection = None

    @property
    def collection(self) -> AsyncIOMotorCollection:
        if self._collection is None:
            raise RuntimeError(
                "MongoKeyValueStore not initialized - call initialize() first"
            )
        return self._collection

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    async def get_item(self, key: str) -> Any | None:
        doc = await self.collection.find_one({"_id": key}, {"value": 1})
        if doc is None:
            return None
        return doc.get("value")

    async def set_item(self, key: str, value: Any) -> None:
        await self.collection.replace_one(
            {"_id": key},
            {
                "_id": key,
                "value": value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            upsert=True,
        )

    async def remove_item(self, key: str) -> None:
        await self.collection.delete_one({"_id": key})

    async def get_all_keys(self) -> list[str]:
        cursor = self.collection.find({}, {"_id": 1})
        return [doc["_id"] async for doc in cursor]
