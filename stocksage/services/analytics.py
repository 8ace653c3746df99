from datetime import datetime, timedelta
from typing import List, Optional

from beanie import PydanticObjectId

from stocksage.core.database import storage_errors
from stocksage.models.bill import Bill, BillStatus
from stocksage.models.product import Product

GROUP_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-%U",
    "month": "%Y-%m",
}


def _paid(owner_id: PydanticObjectId, since: Optional[datetime] = None, until: Optional[datetime] = None) -> dict:
    match = {"owner_id": owner_id, "status": BillStatus.PAID.value}
    if since is not None:
        match["created_at"] = {"$gte": since}
    if until is not None:
        match.setdefault("created_at", {})["$lte"] = until
    return {"$match": match}


async def _sales_since(owner_id: PydanticObjectId, since: datetime) -> dict:
    pipeline = [
        _paid(owner_id, since),
        {"$group": {"_id": None, "total": {"$sum": "$total"}, "count": {"$sum": 1}}},
    ]
    res = await Bill.aggregate(pipeline).to_list()
    if not res:
        return {"total": 0, "count": 0}
    return {"total": round(res[0]["total"], 2), "count": res[0]["count"]}


async def _top_products(owner_id: PydanticObjectId, limit: int = 5) -> List[dict]:
    pipeline = [
        _paid(owner_id),
        {"$unwind": "$items"},
        {"$group": {
            "_id": "$items.product_id",
            "product_name": {"$first": "$items.product_name"},
            "total_sold": {"$sum": "$items.quantity"},
            "revenue": {"$sum": "$items.total"},
        }},
        {"$sort": {"total_sold": -1}},
        {"$limit": limit},
    ]
    return [
        {
            "product_id": str(row["_id"]),
            "product_name": row["product_name"],
            "total_sold": row["total_sold"],
            "revenue": round(row["revenue"], 2),
        }
        for row in await Bill.aggregate(pipeline).to_list()
    ]


async def _sales_trend(owner_id: PydanticObjectId, since: datetime) -> List[dict]:
    pipeline = [
        _paid(owner_id, since),
        {"$group": {
            "_id": {"$dateToString": {"format": GROUP_FORMATS["day"], "date": "$created_at"}},
            "sales": {"$sum": "$total"},
            "orders": {"$sum": 1},
        }},
        {"$sort": {"_id": 1}},
    ]
    return [
        {"date": row["_id"], "sales": round(row["sales"], 2), "orders": row["orders"]}
        for row in await Bill.aggregate(pipeline).to_list()
    ]


async def dashboard(owner_id: PydanticObjectId, now: Optional[datetime] = None) -> dict:
    """Headline numbers for the owner's dashboard. Only paid bills count as sales."""
    now = now or datetime.utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_month = start_of_day.replace(day=1)

    active = {"owner_id": owner_id, "is_active": True}

    with storage_errors("building the dashboard"):
        total_products = await Product.find(active).count()
        low_stock = await Product.find(
            {**active, "$expr": {"$lte": ["$quantity", "$min_stock_level"]}}
        ).count()

        todays_sales = await _sales_since(owner_id, start_of_day)
        monthly_sales = await _sales_since(owner_id, start_of_month)
        top_products = await _top_products(owner_id)
        # Last 7 days, today included
        sales_trend = await _sales_trend(owner_id, start_of_day - timedelta(days=6))

        recent_bills = await Bill.find(Bill.owner_id == owner_id).sort(-Bill.created_at).limit(5).to_list()

    return {
        "total_products": total_products,
        "low_stock_products": low_stock,
        "todays_sales": todays_sales,
        "monthly_sales": monthly_sales,
        "top_products": top_products,
        "recent_bills": [
            {
                "id": str(bill.id),
                "bill_number": bill.bill_number,
                "customer_name": bill.customer_name,
                "total": bill.total,
                "status": bill.status,
                "created_at": bill.created_at,
            }
            for bill in recent_bills
        ],
        "sales_trend": sales_trend,
    }


async def sales_report(
    owner_id: PydanticObjectId,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    group_by: str = "day",
) -> List[dict]:
    """Paid sales bucketed by day, week (%Y-%U) or month. Unknown groupings fall back to day."""
    fmt = GROUP_FORMATS.get(group_by, GROUP_FORMATS["day"])

    match = _paid(owner_id)
    if start_date and end_date:
        match = _paid(owner_id, start_date, end_date)

    pipeline = [
        match,
        {"$group": {
            "_id": {"$dateToString": {"format": fmt, "date": "$created_at"}},
            "total_sales": {"$sum": "$total"},
            "total_orders": {"$sum": 1},
            "average_order_value": {"$avg": "$total"},
        }},
        {"$sort": {"_id": 1}},
    ]

    with storage_errors("building the sales report"):
        rows = await Bill.aggregate(pipeline).to_list()

    return [
        {
            "period": row["_id"],
            "total_sales": round(row["total_sales"], 2),
            "total_orders": row["total_orders"],
            "average_order_value": round(row["average_order_value"], 2),
        }
        for row in rows
    ]
