from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from typing import List, Optional
from datetime import datetime
from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"


class BillStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"


class BillItem(BaseModel):
    """Line item snapshot - embedded in Bill document, frozen at creation"""
    product_id: PydanticObjectId
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)  # Price charged (may differ from catalog price)
    total: float = Field(..., ge=0)  # quantity × price


class Bill(Document):
    """
    A completed (or pending) sale to one customer.
    Everything except `status` is immutable once inserted.
    """
    bill_number: str  # e.g. "BILL-000042"

    # Customer
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None

    items: List[BillItem]

    # Financial Details
    subtotal: float = Field(..., ge=0)       # Sum of all line totals
    tax: float = Field(default=0.0, ge=0)
    discount: float = Field(default=0.0, ge=0)
    total: float = Field(..., ge=0)          # subtotal + tax - discount

    payment_method: PaymentMethod = PaymentMethod.CASH
    status: BillStatus = BillStatus.PAID

    owner_id: PydanticObjectId

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "bills"
        indexes = [
            IndexModel([("bill_number", ASCENDING)], unique=True),
            [("owner_id", ASCENDING), ("created_at", DESCENDING)],
            "status",
        ]
