from pydantic import BaseModel, ConfigDict, Field, field_validator
from beanie import PydanticObjectId
from typing import List, Optional
from datetime import datetime

from stocksage.models.bill import BillStatus, PaymentMethod


# ==========================================
# REQUEST SCHEMAS
# ==========================================

class BillItemCreate(BaseModel):
    """One requested line. `price` is what the customer is charged."""
    product_id: PydanticObjectId
    product_name: Optional[str] = None  # Used in error messages only
    quantity: int = Field(..., gt=0, description="Must be greater than 0")
    price: float = Field(..., ge=0, allow_inf_nan=False)


class BillCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    items: List[BillItemCreate] = Field(..., min_length=1, description="Must have at least 1 item")
    tax: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    discount: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    payment_method: PaymentMethod = PaymentMethod.CASH
    status: BillStatus = BillStatus.PAID

    @field_validator("customer_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("customer_phone", mode="before")
    @classmethod
    def clean_phone(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("customer_email", mode="before")
    @classmethod
    def clean_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v


class BillStatusUpdate(BaseModel):
    # Plain str: the billing service owns the enum check
    status: str


# ==========================================
# RESPONSE SCHEMAS
# ==========================================

class BillItemResponse(BaseModel):
    product_id: PydanticObjectId
    product_name: str
    quantity: int
    price: float
    total: float

    model_config = ConfigDict(from_attributes=True)


class BillResponse(BaseModel):
    id: PydanticObjectId
    bill_number: str
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    items: List[BillItemResponse]
    subtotal: float
    tax: float
    discount: float
    total: float
    payment_method: PaymentMethod
    status: BillStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BillListResponse(BaseModel):
    bills: List[BillResponse]
    total_pages: int
    current_page: int
    total: int
