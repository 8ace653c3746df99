from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends

from stocksage.models.user import User
from stocksage.schemas.analytics import DashboardResponse, SalesReportRow
from stocksage.dependencies.auth import get_current_active_user
from stocksage.services import analytics

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(user: User = Depends(get_current_active_user)):
    return await analytics.dashboard(user.id)


@router.get("/sales-report", response_model=List[SalesReportRow])
async def get_sales_report(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    group_by: str = "day",
    user: User = Depends(get_current_active_user)
):
    """Paid sales grouped by `day`, `week` or `month`."""
    return await analytics.sales_report(user.id, start_date, end_date, group_by)
