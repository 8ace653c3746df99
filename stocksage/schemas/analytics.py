from pydantic import BaseModel
from typing import List
from datetime import datetime

from stocksage.models.bill import BillStatus


class SalesSummary(BaseModel):
    total: float = 0.0
    count: int = 0


class TopProduct(BaseModel):
    product_id: str
    product_name: str
    total_sold: int
    revenue: float


class RecentBill(BaseModel):
    id: str
    bill_number: str
    customer_name: str
    total: float
    status: BillStatus
    created_at: datetime


class TrendPoint(BaseModel):
    date: str  # YYYY-MM-DD
    sales: float
    orders: int


class DashboardResponse(BaseModel):
    total_products: int
    low_stock_products: int
    todays_sales: SalesSummary
    monthly_sales: SalesSummary
    top_products: List[TopProduct]
    recent_bills: List[RecentBill]
    sales_trend: List[TrendPoint]


class SalesReportRow(BaseModel):
    period: str
    total_sales: float
    total_orders: int
    average_order_value: float
