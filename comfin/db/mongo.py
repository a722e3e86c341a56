"""
comfin/db/mongo.py

Purpose: MongoDB connection setup

- Wraps the Motor client with connection pooling
- Collections: users, tax_forms, contacts
- Health checks and retry logic
- Explicit lifecycle owned by the application (no module globals)
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio

from comfin.core.logging import get_logger

logger = get_logger(__name__)

USERS = "users"
TAX_FORMS = "tax_forms"
CONTACTS = "contacts"


class MongoDatabase:
    """
    Owns one Motor client and exposes the application's collections.

    Either connect() it against a URL, or construct it around an existing
    database handle (tests pass an in-memory one).
    """

    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        database: Optional[AsyncIOMotorDatabase] = None,
    ):
        self._url = url
        self._db_name = db_name
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = database

    @property
    def is_connected(self) -> bool:
        return self._database is not None

    async def connect(self, max_retries: int = 3, retry_delay: float = 2):
        """
        Establishes connection to MongoDB with retry logic.
        Called during application startup.
        """
        if self.is_connected:
            logger.warning("MongoDB database already initialized")
            return

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
                )

                client = AsyncIOMotorClient(
                    self._url,
                    maxPoolSize=50,
                    minPoolSize=5,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    retryWrites=True,
                    retryReads=True,
                )

                # Verify connection
                await client.admin.command("ping")

                self._client = client
                self._database = client[self._db_name]

                logger.info(f"✅ Successfully connected to MongoDB: {self._db_name}")
                return

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(
                    f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
                )

                if attempt < max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    logger.critical("Failed to connect to MongoDB after all retries")
                    raise ConnectionError("Could not establish MongoDB connection") from e

    async def close(self):
        """
        Closes the MongoDB connection.
        Called during application shutdown.
        """
        if self._client:
            logger.info("Closing MongoDB connection")
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    async def ping(self) -> bool:
        """
        Checks if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.is_connected:
            logger.error("MongoDB database not initialized")
            return False

        try:
            await self._database.command("ping")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If database is not initialized
        """
        if not self.is_connected:
            raise RuntimeError(
                "Database not initialized. Call connect() during startup."
            )
        return self._database

    @property
    def users(self) -> AsyncIOMotorCollection:
        """
        Users collection.

        Fields:
        - email: str (unique, lower-case)
        - name: str
        - role: "user" | "admin"
        - useOTP: bool
        - password: str (bcrypt hash, password mode only)
        - otp / otpExpiry / otpAttempts (OTP mode only)
        - pan, mobile: profile fields
        - createdAt, updatedAt: datetime
        """
        return self.database[USERS]

    @property
    def tax_forms(self) -> AsyncIOMotorCollection:
        return self.database[TAX_FORMS]

    @property
    def contacts(self) -> AsyncIOMotorCollection:
        return self.database[CONTACTS]
