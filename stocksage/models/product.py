from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from typing import Optional
from datetime import datetime
from enum import Enum


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


class Product(Document):
    # --- Identification ---
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: str = Field(..., min_length=2, max_length=50)
    barcode: Optional[str] = Field(default=None, max_length=50)  # Unique when present
    supplier: Optional[str] = Field(default=None, max_length=100)
    image_url: Optional[str] = None

    # --- Financials ---
    price: float = Field(..., ge=0, allow_inf_nan=False)       # Selling Price
    cost_price: float = Field(..., ge=0, allow_inf_nan=False)  # Buying Price

    # --- Stock ---
    # Only the inventory ledger writes this field
    quantity: int = Field(default=0, ge=0)
    min_stock_level: int = Field(default=10, ge=0)

    # --- Ownership ---
    owner_id: PydanticObjectId
    is_active: bool = True  # False == deleted

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def stock_status(self) -> StockStatus:
        if self.quantity == 0:
            return StockStatus.OUT_OF_STOCK
        if self.quantity <= self.min_stock_level:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    @property
    def profit_margin(self) -> float:
        if self.cost_price > 0:
            return round((self.price - self.cost_price) / self.cost_price * 100, 2)
        return 0

    class Settings:
        name = "products"
        # None fields are not stored; the sparse barcode index depends on it
        keep_nulls = False
        indexes = [
            IndexModel([("barcode", ASCENDING)], unique=True, sparse=True),
            [("owner_id", ASCENDING), ("category", ASCENDING)],
            [("owner_id", ASCENDING), ("quantity", ASCENDING)],
        ]
