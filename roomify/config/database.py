"""
Database configuration and connection management for MongoDB
"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

load_dotenv()

logger = logging.getLogger(__name__)

class DatabaseConfig:
    """MongoDB database configuration"""

    def __init__(self):
        self.MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "roomify_db")
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect_db(self):
        """Connect to MongoDB and make sure the booking indexes exist"""
        try:
            self.client = AsyncIOMotorClient(self.MONGO_URI)
            self.database = self.client[self.DATABASE_NAME]
            # Test connection
            await self.client.admin.command('ping')
            await self.ensure_indexes()
            logger.info("✅ Connected to MongoDB: %s", self.DATABASE_NAME)
        except Exception as e:
            logger.error("❌ Error connecting to MongoDB: %s", e)
            raise

    async def ensure_indexes(self):
        bookings = self.get_collection(Collections.BOOKINGS)
        # One PENDING/APPROVED booking per (property, tenant); is_active drops on terminal states
        await bookings.create_index(
            [("property_id", 1), ("tenant_id", 1)],
            unique=True,
            partialFilterExpression={"is_active": True},
            name="one_active_booking_per_tenant",
        )
        await bookings.create_index([("property_id", 1), ("status", 1), ("bed_number", 1)])
        await bookings.create_index([("landlord_id", 1), ("status", 1)])
        await bookings.create_index([("tenant_id", 1), ("status", 1)])
        await bookings.create_index([("status", 1), ("expires_at", 1)])
        await bookings.create_index([("created_at", -1)])

    async def close_db(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("✅ MongoDB connection closed")

    def get_collection(self, collection_name: str):
        """Get a specific collection"""
        if self.database is None:
            raise Exception("Database not connected")
        return self.database[collection_name]

# Global database instance
db_config = DatabaseConfig()

# Collection names
class Collections:
    PROPERTIES = "properties"
    BOOKINGS = "bookings"
