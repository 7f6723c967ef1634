from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

def create_mongo_client(config=settings):
    return AsyncIOMotorClient(
        config.MONGO_URL,
        maxPoolSize=10,
        serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
        socketTimeoutMS=config.MONGO_TIMEOUT_MS,
    )

async def ensure_indexes(db):
    """Create the indexes the marketplace relies on for correctness and lookups"""
    # One entitlement per buyer and document, one purchase per processor transaction
    await db.purchases.create_index(
        [("buyer_id", ASCENDING), ("document_id", ASCENDING)],
        unique=True,
        name="uniq_buyer_document",
    )
    await db.purchases.create_index("payment_id", unique=True, name="uniq_payment_id")
    await db.purchases.create_index("document_id")

    await db.documents.create_index("id", unique=True)
    await db.documents.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.flashcards.create_index("document_id")
    await db.user_grades.create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])

    await db.users.create_index("id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index("username", unique=True)
    logger.info("Database indexes ensured")

def get_db(request: Request):
    return request.app.state.db
