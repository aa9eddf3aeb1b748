"""MongoDB connection owned by the application for the lifetime of the process."""
import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from services import budgets_service
from utils.config import BUDGETS_COLLECTION

logger = logging.getLogger(__name__)


class MongoDatabase:
    """
    Holds the Motor client and database handle.

    connect() runs once: at startup from the app lifespan, or on the first
    request if the database was unreachable at startup. close() is called on
    shutdown.
    """

    def __init__(self, uri: str, db_name: str, timeout_ms: int = 5000):
        self._uri = uri
        self._db_name = db_name
        self._timeout_ms = timeout_ms
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._db_name

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        if self._db is not None:
            return self._db
        async with self._lock:
            if self._db is not None:
                return self._db
            logger.info(f"Connecting to MongoDB database '{self._db_name}'...")
            client = AsyncIOMotorClient(self._uri, tz_aware=True, serverSelectionTimeoutMS=self._timeout_ms)
            try:
                await client.admin.command('ping')
                db = client[self._db_name]
                await budgets_service.ensure_indexes(db.get_collection(BUDGETS_COLLECTION))
            except PyMongoError as e:
                client.close()
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise ConnectionError(f"Failed to connect to the database: {e}") from e
            self._client = client
            self._db = db
            logger.info(f"Successfully connected to MongoDB database: {self._db_name}")
        return self._db

    async def get_collection(self, name: str) -> AsyncIOMotorCollection:
        db = await self.connect()
        return db.get_collection(name)

    async def ping(self) -> bool:
        """True if the server answers; connects first if needed."""
        try:
            db = await self.connect()
            await db.client.admin.command('ping')
            return True
        except (ConnectionError, PyMongoError) as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        if self._client is not None:
            logger.info("Closing MongoDB connection...")
            self._client.close()
            logger.info("MongoDB connection closed.")
        self._client = None
        self._db = None
