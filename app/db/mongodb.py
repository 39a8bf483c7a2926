from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db = None

db = Database()

async def connect_to_mongo():
    """Connect to MongoDB."""
    try:
        logger.info("Connecting to MongoDB...")
        # tz_aware so stored UTC instants come back comparable with local ones
        db.client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
        db.db = db.client[settings.DB_NAME]
        logger.info("Connected to MongoDB.")

        # Create indexes for collections
        await create_indexes()

    except Exception as e:
        logger.error(f"Could not connect to MongoDB: {e}")
        raise e

async def close_mongo_connection():
    """Close MongoDB connection."""
    if db.client:
        logger.info("Closing MongoDB connection...")
        db.client.close()
        logger.info("MongoDB connection closed.")

async def get_database():
    """Get MongoDB database instance."""
    return db.db

async def create_indexes():
    """Create indexes for collections."""
    try:
        # One working-hours rule per weekday per stylist
        await db.db.stylist_availability_rules.create_index(
            [("stylistId", ASCENDING), ("weekday", ASCENDING)],
            unique=True
        )

        # One-off unavailability
        await db.db.stylist_unavailability.create_index(
            [("stylistId", ASCENDING), ("startTime", ASCENDING)]
        )

        # Recurring unavailability series
        await db.db.stylist_recurring_unavailability.create_index("stylistId")

        # Exactly one exception per overridden occurrence
        await db.db.recurring_unavailability_exceptions.create_index(
            [("seriesId", ASCENDING), ("originalStartTime", ASCENDING)],
            unique=True
        )

        # Bookings
        await db.db.bookings.create_index(
            [("stylistId", ASCENDING), ("startTime", ASCENDING)]
        )
        await db.db.bookings.create_index([("stylistId", ASCENDING), ("status", ASCENDING)])
        await db.db.bookings.create_index("clientId")

        logger.info("MongoDB indexes created successfully.")
    except Exception as e:
        logger.error(f"Failed to create MongoDB indexes: {e}")
