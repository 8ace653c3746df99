import asyncio
import logging

from stocksage.core.config import settings
from stocksage.core.database import init_db
from stocksage.core.logging import configure_logging
from stocksage.core.security import get_password_hash
from stocksage.models.product import Product
from stocksage.models.user import User

logger = logging.getLogger("seed")

DEMO_PRODUCTS = [
    {"name": "Basmati Rice 5kg", "category": "Groceries", "price": 650.0, "cost_price": 540.0, "quantity": 40, "barcode": "8901000000011"},
    {"name": "Sunflower Oil 1L", "category": "Groceries", "price": 180.0, "cost_price": 150.0, "quantity": 8},
    {"name": "Notebook A5", "category": "Stationery", "price": 60.0, "cost_price": 35.0, "quantity": 120, "min_stock_level": 25},
    {"name": "Ballpoint Pen (Blue)", "category": "Stationery", "price": 10.0, "cost_price": 6.0, "quantity": 0},
]


async def seed_data():
    logger.info("Connecting to database '%s'...", settings.DATABASE_NAME)
    await init_db()

    email = (settings.DEMO_EMAIL or "demo@stocksage.local").lower()
    password = settings.DEMO_PASSWORD or "demo1234"

    # Re-create the demo shop from scratch
    existing = await User.find_one(User.email == email)
    if existing:
        logger.warning("Demo account '%s' already exists, re-creating it", email)
        await Product.find(Product.owner_id == existing.id).delete()
        await existing.delete()

    owner = User(
        name="Demo Owner",
        email=email,
        hashed_password=get_password_hash(password),
        shop_name="Demo General Store",
        phone="+910000000000",
        address="1 Market Road",
    )
    await owner.insert()

    for data in DEMO_PRODUCTS:
        await Product(**data, owner_id=owner.id).insert()

    logger.info("Demo shop created with %d products", len(DEMO_PRODUCTS))
    logger.info("Login with %s / %s", email, password)

if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_data())
