import logging
from contextlib import contextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from pymongo.errors import PyMongoError
from stocksage.core.config import settings
from stocksage.core.exceptions import StorageError
from stocksage.models.user import User
from stocksage.models.product import Product
from stocksage.models.bill import Bill
from stocksage.models.counter import Counter

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [User, Product, Bill, Counter]


async def init_db(client: AsyncIOMotorClient | None = None):
    """Connect to MongoDB and initialize Beanie"""
    if client is None:
        client = AsyncIOMotorClient(settings.MONGODB_URL)

    await init_beanie(
        database=client[settings.DATABASE_NAME],
        document_models=DOCUMENT_MODELS,
    )

    logger.info("Beanie initialized with database '%s'", settings.DATABASE_NAME)
    return client


@contextmanager
def storage_errors(action: str):
    """Re-raise driver failures as a StorageError so internals never reach the caller."""
    try:
        yield
    except PyMongoError as exc:
        logger.exception("Storage failure while %s", action)
        raise StorageError() from exc
