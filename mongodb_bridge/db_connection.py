"""
MongoDB connection wrapper owned by a bridge instance.

The Motor client is created on first use and released explicitly, so callers
never instantiate clients directly.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient

from mongodb_bridge.config import BridgeConfig

logger = logging.getLogger("mongodb_bridge")


class BridgeConnection:
    def __init__(self, config: BridgeConfig):
        self.config = config
        self.client: AsyncIOMotorClient | None = None

    def get_client(self) -> AsyncIOMotorClient:
        """Return the Motor client, constructing it on first access."""
        if self.client is None:
            self.client = AsyncIOMotorClient(
                self.config.url,
                uuidRepresentation="standard",
            )
            logger.info("Created Mongo client (db=%s, cols=%s)", self.config.name, list(self.config.cols.values()))
        return self.client

    def get_db(self):
        """Return the database named in the URL, falling back to the configured name."""
        return self.get_client().get_default_database(self.config.name)

    def close(self, forced: bool = False) -> None:
        """Close the client if it was created; safe to call multiple times."""
        if self.client is None:
            return
        client = self.client
        self.client = None
        client.close()
        logger.info("Closed Mongo client (forced=%s)", forced)
