"""
MongoDB Database Configuration and Connection
"""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from vintellitour.core.config import DATABASE_NAME, MONGODB_URI
from vintellitour.core.logger import get_logger

log = get_logger(__name__)

# Global database client
_client = None
_database = None


def get_database():
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        _client = AsyncIOMotorClient(MONGODB_URI, server_api=ServerApi("1"))
        _database = _client[DATABASE_NAME]

        log.info("Connected to MongoDB database: %s", DATABASE_NAME)

    return _database


async def init_indexes():
    """
    Initialize database indexes for better query performance
    """
    try:
        itineraries_collection = get_itineraries_collection()
        await itineraries_collection.create_index([("user", 1), ("_id", 1)], name="owner_order")
        log.info("Database indexes created successfully")
    except PyMongoError as e:
        log.warning("Index creation warning: %s", e)


async def close_database_connection():
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        log.info("Closed MongoDB connection")


async def test_connection() -> bool:
    """
    Test the MongoDB connection
    """
    try:
        db = get_database()
        await db.command("ping")
        log.info("MongoDB connection successful")
        return True
    except (PyMongoError, ValueError) as e:
        log.error("MongoDB connection failed: %s", e)
        return False


def get_itineraries_collection():
    """
    Get the itineraries collection from the database
    """
    db = get_database()
    return db.itineraries
