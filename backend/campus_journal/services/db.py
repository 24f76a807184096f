# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from campus_journal.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        # tz_aware so consent and expiry arithmetic compares aware datetimes
        self.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    async def ensure_indexes(self):
        """create lookup indexes and the ttl index that purges expired journal entries"""
        await self.users.create_index("authSubject", unique=True)
        await self.users.create_index("lastActive")
        await self.users.create_index("accountStatus")

        await self.journal_entries.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
        await self.journal_entries.create_index("privacy.isPrivate")
        # the server deletes an entry once expiresAt has passed
        await self.journal_entries.create_index("expiresAt", expireAfterSeconds=0)
        logger.info("Indexes ensured on users and journal_entries")

    # collection accessors

    @property
    def users(self):
        return self.db["users"]

    @property
    def journal_entries(self):
        return self.db["journal_entries"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
