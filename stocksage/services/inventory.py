"""
Inventory ledger: the only code allowed to change Product.quantity.

Every operation is scoped to the owning account. A product that is missing,
deactivated, or owned by someone else is reported as NotFound.
"""
import logging
from datetime import datetime
from typing import List, Optional

from beanie import PydanticObjectId, UpdateResponse

from stocksage.core.database import storage_errors
from stocksage.core.exceptions import InsufficientStockError, InvalidInputError, NotFoundError, StorageError
from stocksage.models.product import Product
from stocksage.schemas.product import AdjustMode, BulkQuantityItem

logger = logging.getLogger(__name__)

# Conditional updates can lose to a concurrent writer; give up after this many tries
MAX_ATTEMPTS = 3


def _active_scope(product_id: PydanticObjectId, owner_id: PydanticObjectId) -> tuple:
    return (
        Product.id == product_id,
        Product.owner_id == owner_id,
        Product.is_active == True,  # noqa: E712 (beanie expression)
    )


async def _apply(update: dict, *conditions) -> Optional[Product]:
    """Run one atomic find-and-modify; None when no document matched."""
    update = {op: dict(fields) for op, fields in update.items()}
    update.setdefault("$set", {})["updated_at"] = datetime.utcnow()
    with storage_errors("updating stock"):
        return await Product.find_one(*conditions).update(
            update, response_type=UpdateResponse.NEW_DOCUMENT
        )


# ==========================================
# READS
# ==========================================

async def lookup(
    product_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    name: Optional[str] = None,
) -> Product:
    with storage_errors("looking up a product"):
        product = await Product.find_one(*_active_scope(product_id, owner_id))
    if product is None:
        raise NotFoundError(f"Product not found: {name or product_id}")
    return product


async def check_available(
    product_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    quantity: int,
    name: Optional[str] = None,
) -> Product:
    product = await lookup(product_id, owner_id, name)
    if product.quantity < quantity:
        raise InsufficientStockError(product.name, product.quantity)
    return product


# ==========================================
# WRITES
# ==========================================

async def decrement(
    product_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    quantity: int,
) -> int:
    """
    Remove `quantity` units in a single conditional update.

    The filter requires quantity >= the amount removed, so two concurrent sales
    can never both take the last units. Returns the new quantity.
    """
    for _ in range(MAX_ATTEMPTS):
        updated = await _apply(
            {"$inc": {"quantity": -quantity}},
            *_active_scope(product_id, owner_id),
            Product.quantity >= quantity,
        )
        if updated is not None:
            return updated.quantity

        # Raises NotFound / InsufficientStock; falls through only if stock came back
        await check_available(product_id, owner_id, quantity)

    raise StorageError("Stock is changing too quickly, please retry")


async def restock(
    product_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    quantity: int,
) -> Optional[int]:
    """Give units back after a failed bill. Ignores the active flag."""
    updated = await _apply(
        {"$inc": {"quantity": quantity}},
        Product.id == product_id,
        Product.owner_id == owner_id,
    )
    return updated.quantity if updated is not None else None


async def adjust_quantity(
    product_id: PydanticObjectId,
    owner_id: PydanticObjectId,
    quantity: int,
    mode: AdjustMode | str = AdjustMode.SET,
) -> Product:
    """
    Manual stock correction.

    - set: quantity becomes the given value
    - add: quantity grows by the given value
    - subtract: quantity shrinks by the given value, never below zero
    """
    if quantity is None or quantity < 0:
        raise InvalidInputError("Valid quantity is required")
    try:
        mode = AdjustMode(mode)
    except ValueError:
        raise InvalidInputError(f"Invalid operation '{mode}'")

    scope = _active_scope(product_id, owner_id)

    if mode == AdjustMode.SET:
        updated = await _apply({"$set": {"quantity": quantity}}, *scope)
    elif mode == AdjustMode.ADD:
        updated = await _apply({"$inc": {"quantity": quantity}}, *scope)
    else:
        updated = None
        for _ in range(MAX_ATTEMPTS):
            updated = await _apply(
                {"$inc": {"quantity": -quantity}}, *scope, Product.quantity >= quantity
            )
            if updated is None:
                updated = await _apply(
                    {"$set": {"quantity": 0}}, *scope, Product.quantity < quantity
                )
            if updated is not None:
                break
            # Neither branch matched: either the product is gone or it raced
            await lookup(product_id, owner_id)

    if updated is None:
        await lookup(product_id, owner_id)
        raise StorageError("Stock is changing too quickly, please retry")

    logger.info(
        "Stock adjusted: %s (%s %d) -> %d",
        updated.name, mode.value, quantity, updated.quantity,
    )
    return updated


async def bulk_adjust(owner_id: PydanticObjectId, updates: List[BulkQuantityItem]) -> List[dict]:
    """Apply each adjustment independently; a missing product does not stop the batch."""
    results = []
    for item in updates:
        try:
            product = await adjust_quantity(item.product_id, owner_id, item.quantity, item.operation)
        except NotFoundError:
            results.append({
                "product_id": str(item.product_id),
                "success": False,
                "message": "Product not found",
            })
            continue

        results.append({
            "product_id": str(item.product_id),
            "success": True,
            "new_quantity": product.quantity,
        })
    return results
