import asyncio
import logging

from stocksage.core.database import init_db
from stocksage.core.logging import configure_logging
from stocksage.models.bill import Bill
from stocksage.models.counter import Counter
from stocksage.models.product import Product

logger = logging.getLogger("reset_db")


async def reset_shop_data():
    """Wipe every product, bill and counter. Accounts are kept."""
    await init_db()

    logger.warning("Deleting ALL bills, products and counters...")
    await Bill.delete_all()
    await Product.delete_all()
    await Counter.delete_all()

    logger.info("Database is clean. You can now run 'python seed.py'.")

if __name__ == "__main__":
    configure_logging()
    asyncio.run(reset_shop_data())
