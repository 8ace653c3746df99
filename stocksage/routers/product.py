import logging
import math
import re
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from beanie import PydanticObjectId, UpdateResponse
from pymongo.errors import DuplicateKeyError

from stocksage.core.config import settings
from stocksage.core.exceptions import ConflictError, NotFoundError
from stocksage.models.product import Product, StockStatus
from stocksage.models.user import User
from stocksage.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    QuantityAdjustment,
    BulkQuantityUpdate,
    BulkQuantityResponse,
)
from stocksage.dependencies.auth import get_current_active_user
from stocksage.services import inventory

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields that may be cleared with null / "" on update
NULLABLE_FIELDS = {"description", "barcode", "supplier", "image_url"}


async def _ensure_barcode_free(barcode: Optional[str], exclude_id: Optional[PydanticObjectId] = None):
    if not barcode:
        return
    query = {"barcode": barcode}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if await Product.find_one(query):
        raise ConflictError("Barcode already exists")


# ==========================================
# LISTINGS
# ==========================================

@router.get("/", response_model=ProductListResponse)
async def get_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock_status: Optional[StockStatus] = None,
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    user: User = Depends(get_current_active_user)
):
    query = {"owner_id": user.id, "is_active": True}

    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"category": {"$regex": pattern, "$options": "i"}},
            {"barcode": {"$regex": pattern, "$options": "i"}},
        ]

    if category:
        query["category"] = {"$regex": re.escape(category), "$options": "i"}

    if min_price is not None:
        query.setdefault("price", {})["$gte"] = min_price
    if max_price is not None:
        query.setdefault("price", {})["$lte"] = max_price

    if stock_status == StockStatus.OUT_OF_STOCK:
        query["quantity"] = 0

    if stock_status in (StockStatus.LOW_STOCK, StockStatus.IN_STOCK):
        # Depends on each product's own threshold, so filter after the query
        matches = await Product.find(query).sort(-Product.created_at).to_list()
        matches = [p for p in matches if p.stock_status == stock_status]
        total = len(matches)
        products = matches[(page - 1) * limit: page * limit]
    else:
        total = await Product.find(query).count()
        products = await Product.find(query).sort(-Product.created_at).skip((page - 1) * limit).limit(limit).to_list()

    return {
        "products": [ProductResponse.model_validate(p) for p in products],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
    }


@router.get("/categories/list", response_model=List[str])
async def get_categories(user: User = Depends(get_current_active_user)):
    categories = await Product.get_motor_collection().distinct(
        "category", {"owner_id": user.id, "is_active": True}
    )
    return sorted(categories)


@router.get("/alerts/low-stock", response_model=List[ProductResponse])
async def get_low_stock(user: User = Depends(get_current_active_user)):
    """Active products at or below their minimum stock level, emptiest first."""
    products = await Product.find(
        Product.owner_id == user.id, Product.is_active == True  # noqa: E712
    ).sort(+Product.quantity).to_list()
    return [
        ProductResponse.model_validate(p)
        for p in products
        if p.quantity <= p.min_stock_level
    ]


# ==========================================
# INVENTORY CORRECTIONS
# ==========================================

@router.patch("/bulk/quantity", response_model=BulkQuantityResponse)
async def bulk_update_quantity(
    data: BulkQuantityUpdate,
    user: User = Depends(get_current_active_user)
):
    results = await inventory.bulk_adjust(user.id, data.updates)
    return {"message": "Bulk quantity update completed", "results": results}


@router.patch("/{product_id}/quantity", response_model=ProductResponse)
async def update_quantity(
    product_id: PydanticObjectId,
    data: QuantityAdjustment,
    user: User = Depends(get_current_active_user)
):
    product = await inventory.adjust_quantity(product_id, user.id, data.quantity, data.operation)
    return ProductResponse.model_validate(product)


# ==========================================
# SINGLE PRODUCT CRUD
# ==========================================

@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: PydanticObjectId, user: User = Depends(get_current_active_user)):
    product = await inventory.lookup(product_id, user.id)
    return ProductResponse.model_validate(product)


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    user: User = Depends(get_current_active_user)
):
    await _ensure_barcode_free(product_data.barcode)

    new_product = Product(**product_data.model_dump(), owner_id=user.id)
    try:
        await new_product.insert()
    except DuplicateKeyError:
        raise ConflictError("Barcode already exists")

    logger.info("Product '%s' created with %d in stock", new_product.name, new_product.quantity)
    return ProductResponse.model_validate(new_product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: PydanticObjectId,
    update_data: ProductUpdate,
    user: User = Depends(get_current_active_user)
):
    data_dict = update_data.model_dump(exclude_unset=True)

    to_set = {k: v for k, v in data_dict.items() if v is not None}
    to_unset = {k: "" for k, v in data_dict.items() if v is None and k in NULLABLE_FIELDS}
    to_set["updated_at"] = datetime.utcnow()

    await _ensure_barcode_free(to_set.get("barcode"), exclude_id=product_id)

    update = {"$set": to_set}
    if to_unset:
        update["$unset"] = to_unset

    try:
        product = await Product.find_one(
            Product.id == product_id,
            Product.owner_id == user.id,
            Product.is_active == True,  # noqa: E712
        ).update(update, response_type=UpdateResponse.NEW_DOCUMENT)
    except DuplicateKeyError:
        raise ConflictError("Barcode already exists")

    if product is None:
        raise NotFoundError("Product not found")
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}")
async def delete_product(
    product_id: PydanticObjectId,
    user: User = Depends(get_current_active_user)
):
    """Soft delete: the product disappears from listings but old bills keep pointing at it."""
    product = await Product.find_one(
        Product.id == product_id,
        Product.owner_id == user.id,
        Product.is_active == True,  # noqa: E712
    ).update(
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if product is None:
        raise NotFoundError("Product not found")

    logger.info("Product '%s' deactivated", product.name)
    return {"message": "Product deleted successfully"}
