from pydantic import BaseModel, ConfigDict, Field, field_validator
from beanie import PydanticObjectId
from typing import List, Optional
from datetime import datetime
from enum import Enum
import re

from stocksage.models.product import StockStatus

URL_PATTERN = re.compile(r"^https?://.+")


class AdjustMode(str, Enum):
    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"


def _clean_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _check_image_url(value):
    if value is not None and not URL_PATTERN.match(value):
        raise ValueError("Image must be a valid URL")
    return value


class ProductBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: str = Field(..., min_length=2, max_length=50)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    cost_price: float = Field(..., ge=0, allow_inf_nan=False)
    min_stock_level: int = Field(default=10, ge=0)
    barcode: Optional[str] = Field(default=None, max_length=50)
    supplier: Optional[str] = Field(default=None, max_length=100)
    image_url: Optional[str] = None

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", "barcode", "supplier", "image_url", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _clean_optional(v)

    @field_validator("image_url")
    @classmethod
    def valid_image_url(cls, v):
        return _check_image_url(v)


class ProductCreate(ProductBase):
    quantity: int = Field(..., ge=0)


class ProductUpdate(BaseModel):
    """Partial edit. Stock is changed through the quantity endpoints only."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, min_length=2, max_length=50)
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    cost_price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    barcode: Optional[str] = Field(default=None, max_length=50)
    supplier: Optional[str] = Field(default=None, max_length=100)
    image_url: Optional[str] = None

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", "barcode", "supplier", "image_url", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _clean_optional(v)

    @field_validator("image_url")
    @classmethod
    def valid_image_url(cls, v):
        return _check_image_url(v)


class ProductResponse(ProductBase):
    id: PydanticObjectId
    quantity: int
    stock_status: StockStatus
    profit_margin: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total_pages: int
    current_page: int
    total: int


# --- Inventory corrections ---

class QuantityAdjustment(BaseModel):
    quantity: int = Field(..., ge=0, description="Amount to set, add or subtract")
    operation: AdjustMode = AdjustMode.SET


class BulkQuantityItem(BaseModel):
    product_id: PydanticObjectId
    quantity: int = Field(..., ge=0)
    operation: AdjustMode = AdjustMode.SUBTRACT


class BulkQuantityUpdate(BaseModel):
    updates: List[BulkQuantityItem] = Field(..., min_length=1)


class BulkQuantityResult(BaseModel):
    product_id: str
    success: bool
    new_quantity: Optional[int] = None
    message: Optional[str] = None


class BulkQuantityResponse(BaseModel):
    message: str
    results: List[BulkQuantityResult]
