"""
Billing engine.

Bill creation runs in three phases:

1. Validate every requested line against the inventory ledger. Nothing is
   written until all lines pass.
2. Insert the bill under a freshly issued bill number.
3. Decrement stock line by line. If anything goes wrong here (typically
   another sale drained the product in the meantime), the decrements
   already applied are given back and the bill is removed before the error is re-raised.

Unit prices come from the request, not from the catalog: the shop owner may
charge a different price at the counter.
"""
import asyncio
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import List, Optional, Tuple

from beanie import PydanticObjectId, UpdateResponse
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from stocksage.core.config import settings
from stocksage.core.database import storage_errors
from stocksage.core.exceptions import ConflictError, InvalidInputError, NotFoundError, StorageError
from stocksage.models.bill import Bill, BillItem, BillStatus
from stocksage.models.counter import Counter
from stocksage.schemas.bill import BillCreate, BillItemCreate
from stocksage.services import inventory

logger = logging.getLogger(__name__)

BILL_SEQUENCE = "bill_number"


# ==========================================
# HELPER FUNCTIONS
# ==========================================

async def next_bill_number() -> str:
    """Issue the next number from the shared counter, e.g. BILL-000042."""
    with storage_errors("issuing a bill number"):
        counter = await Counter.get_motor_collection().find_one_and_update(
            {"_id": BILL_SEQUENCE},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    return f"{settings.BILL_NUMBER_PREFIX}-{counter['seq']:06d}"


async def _price_lines(
    owner_id: PydanticObjectId,
    lines: List[BillItemCreate],
) -> Tuple[List[BillItem], float]:
    """Validate all lines and build the frozen snapshots. No writes happen here."""
    requested = defaultdict(int)
    items = []
    subtotal = 0.0

    for line in lines:
        # Repeated lines for one product must fit in stock together
        requested[line.product_id] += line.quantity
        product = await inventory.check_available(
            line.product_id, owner_id, requested[line.product_id], name=line.product_name
        )

        # Money is kept to cents
        line_total = round(line.quantity * line.price, 2)
        subtotal += line_total

        items.append(BillItem(
            product_id=product.id,
            product_name=product.name,
            quantity=line.quantity,
            price=line.price,
            total=line_total,
        ))

    return items, round(subtotal, 2)


async def _insert_with_number(bill: Bill) -> Bill:
    for attempt in range(1, settings.BILL_NUMBER_RETRIES + 1):
        bill.bill_number = await next_bill_number()
        try:
            await bill.insert()
            return bill
        except DuplicateKeyError:
            logger.warning(
                "Bill number %s already taken (attempt %d/%d)",
                bill.bill_number, attempt, settings.BILL_NUMBER_RETRIES,
            )
        except PyMongoError as exc:
            logger.exception("Could not save bill %s", bill.bill_number)
            raise StorageError() from exc

    raise ConflictError("Could not allocate a unique bill number, please retry")


async def _roll_back(bill: Bill, applied: List[BillItemCreate], owner_id: PydanticObjectId):
    try:
        for line in applied:
            await inventory.restock(line.product_id, owner_id, line.quantity)
        with storage_errors("removing an unfinished bill"):
            await bill.delete()
    except Exception:
        logger.critical(
            "Bill %s could not be rolled back; bill and stock need manual reconciliation",
            bill.bill_number,
        )
        raise


# ==========================================
# OPERATIONS
# ==========================================

async def create_bill(owner_id: PydanticObjectId, bill_data: BillCreate) -> Bill:
    if not bill_data.customer_name:
        raise InvalidInputError("Customer name is required")
    if not bill_data.items:
        raise InvalidInputError("Bill must have at least 1 item")

    # 1. Validate every line before touching anything
    items, subtotal = await _price_lines(owner_id, bill_data.items)

    # 2. Totals
    total = round(subtotal + bill_data.tax - bill_data.discount, 2)
    if total < 0:
        raise InvalidInputError("Bill total cannot be negative")

    # 3. Persist
    bill = Bill(
        bill_number="",
        customer_name=bill_data.customer_name,
        customer_phone=bill_data.customer_phone,
        customer_email=bill_data.customer_email,
        items=items,
        subtotal=subtotal,
        tax=bill_data.tax,
        discount=bill_data.discount,
        total=total,
        payment_method=bill_data.payment_method,
        status=bill_data.status,
        owner_id=owner_id,
    )
    await _insert_with_number(bill)

    # 4. Take the stock, or undo everything
    applied = []
    try:
        for line in bill_data.items:
            await inventory.decrement(line.product_id, owner_id, line.quantity)
            applied.append(line)
    except (Exception, asyncio.CancelledError) as exc:
        logger.warning("Rolling back bill %s: %r", bill.bill_number, exc)
        await _roll_back(bill, applied, owner_id)
        raise

    logger.info(
        "Bill %s created: %d item(s), total %.2f", bill.bill_number, len(items), total
    )
    return bill


async def get_bill(bill_id: PydanticObjectId, owner_id: PydanticObjectId) -> Bill:
    with storage_errors("fetching a bill"):
        bill = await Bill.find_one(Bill.id == bill_id, Bill.owner_id == owner_id)
    if bill is None:
        raise NotFoundError("Bill not found")
    return bill


async def list_bills(
    owner_id: PydanticObjectId,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Bill], int]:
    """Newest first. Returns the requested page and the total match count."""
    query = {"owner_id": owner_id}

    if status:
        try:
            query["status"] = BillStatus(status).value
        except ValueError:
            raise InvalidInputError("Invalid status")

    if start_date:
        query["created_at"] = {"$gte": start_date}
    if end_date:
        query.setdefault("created_at", {})["$lte"] = end_date

    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"customer_name": {"$regex": pattern, "$options": "i"}},
            {"bill_number": {"$regex": pattern, "$options": "i"}},
        ]

    with storage_errors("listing bills"):
        total = await Bill.find(query).count()
        bills = await Bill.find(query).sort(-Bill.created_at).skip((page - 1) * limit).limit(limit).to_list()
    return bills, total


async def update_status(
    bill_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    status: str,
) -> Bill:
    """Move a bill to paid / pending / cancelled. Stock is not touched."""
    try:
        new_status = BillStatus(status)
    except ValueError:
        raise InvalidInputError("Invalid status")

    with storage_errors("updating bill status"):
        bill = await Bill.find_one(Bill.id == bill_id, Bill.owner_id == owner_id).update(
            {"$set": {"status": new_status.value, "updated_at": datetime.utcnow()}},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
    if bill is None:
        raise NotFoundError("Bill not found")

    logger.info("Bill %s marked %s", bill.bill_number, new_status.value)
    return bill
