import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from beanie import PydanticObjectId

from stocksage.core.config import settings
from stocksage.models.user import User
from stocksage.schemas.bill import BillCreate, BillStatusUpdate, BillResponse, BillListResponse
from stocksage.dependencies.auth import get_current_active_user
from stocksage.services import billing

router = APIRouter()


@router.post("/", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_data: BillCreate,
    user: User = Depends(get_current_active_user)
):
    """
    Record a sale and take the sold units out of stock.

    Fails without side effects when any line references an unknown product
    or asks for more than is in stock.
    """
    bill = await billing.create_bill(user.id, bill_data)
    return BillResponse.model_validate(bill)


@router.get("/", response_model=BillListResponse)
async def list_bills(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    user: User = Depends(get_current_active_user)
):
    bills, total = await billing.list_bills(
        user.id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    return {
        "bills": [BillResponse.model_validate(b) for b in bills],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
    }


@router.get("/{bill_id}", response_model=BillResponse)
async def get_bill(bill_id: PydanticObjectId, user: User = Depends(get_current_active_user)):
    bill = await billing.get_bill(bill_id, user.id)
    return BillResponse.model_validate(bill)


@router.patch("/{bill_id}/status", response_model=BillResponse)
async def update_bill_status(
    bill_id: PydanticObjectId,
    data: BillStatusUpdate,
    user: User = Depends(get_current_active_user)
):
    bill = await billing.update_status(bill_id, user.id, data.status)
    return BillResponse.model_validate(bill)
