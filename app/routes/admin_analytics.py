from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, func, select

from app.constants.order_status import OrderStatus
from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.asset import Asset
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.user import User
from app.routes.user_orders import order_to_response
from app.utils.errors import ValidationError
from app.utils.pagination import paginate
from app.utils.timestamps import utcnow

router = APIRouter()

RECENT_SALES_LIMIT = 10
TOP_LIMIT = 10
POPULAR_CATEGORIES_LIMIT = 5


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive values; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def _next_month(start: datetime) -> datetime:
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def _completed_revenue(session: Session, since: Optional[datetime] = None) -> float:
    query = select(func.sum(Order.total)).where(Order.status == OrderStatus.COMPLETED)
    if since is not None:
        query = query.where(Order.created_at >= since)
    return session.exec(query).one() or 0


@router.get("/analytics")
def analytics_overview(
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    total_assets = session.exec(select(func.count(Asset.id))).one()
    total_users = session.exec(select(func.count(User.id))).one()
    total_downloads = session.exec(select(func.sum(Asset.downloads))).one() or 0

    completed_orders = session.exec(
        select(func.count(Order.id)).where(Order.status == OrderStatus.COMPLETED)
    ).one()
    total_revenue = _completed_revenue(session)
    monthly_revenue = _completed_revenue(session, since=_month_start(utcnow()))

    categories = session.exec(
        select(Asset.category, func.count(Asset.id))
        .group_by(Asset.category)
        .order_by(func.count(Asset.id).desc(), Asset.category)
        .limit(POPULAR_CATEGORIES_LIMIT)
    ).all()

    recent = session.exec(
        select(Order)
        .where(Order.status == OrderStatus.COMPLETED)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(RECENT_SALES_LIMIT)
    ).all()
    buyer_ids = {o.user_id for o in recent}
    buyers = {
        u.id: u
        for u in session.exec(select(User).where(User.id.in_(buyer_ids))).all()
    } if buyer_ids else {}

    recent_sales = []
    for order in recent:
        sale = order_to_response(order).model_dump()
        buyer = buyers.get(order.user_id)
        sale["user"] = {"name": buyer.name, "email": buyer.email} if buyer else None
        recent_sales.append(sale)

    return {
        "total_assets": total_assets,
        "total_users": total_users,
        "total_revenue": total_revenue,
        "monthly_revenue": monthly_revenue,
        "total_downloads": total_downloads,
        "popular_categories": [
            {"category": category, "count": count} for category, count in categories
        ],
        "recent_sales": recent_sales,
        "sales_summary": {
            "total_orders": completed_orders,
            "average_order_value": total_revenue / completed_orders if completed_orders else 0,
            "conversion_rate": completed_orders / total_users * 100 if total_users else 0,
        },
    }


@router.get("/sales-report")
def sales_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period: Literal["day", "month"] = "month",
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    """
    Completed-order revenue bucketed by day or month. Both dates are
    inclusive; without them the report covers the current calendar month.
    """
    if (start_date is None) != (end_date is None):
        raise ValidationError("start_date and end_date must be given together")

    if start_date is not None:
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
    else:
        start = _month_start(utcnow())
        end = _next_month(start)

    in_range = (
        (Order.status == OrderStatus.COMPLETED)
        & (Order.created_at >= start)
        & (Order.created_at < end)
    )

    orders = session.exec(
        select(Order.created_at, Order.total).where(in_range).order_by(Order.created_at)
    ).all()

    buckets = OrderedDict()
    for created_at, total in orders:
        created_at = _as_utc(created_at)
        key = (created_at.year, created_at.month, created_at.day if period == "day" else None)
        bucket = buckets.setdefault(key, {"total_revenue": 0.0, "order_count": 0})
        bucket["total_revenue"] += total
        bucket["order_count"] += 1

    sales_data = [
        {
            "year": year,
            "month": month,
            "day": day,
            "total_revenue": b["total_revenue"],
            "order_count": b["order_count"],
            "avg_order_value": b["total_revenue"] / b["order_count"],
        }
        for (year, month, day), b in buckets.items()
    ]

    top = session.exec(
        select(
            OrderItem.asset_id,
            func.max(OrderItem.title),
            func.count(OrderItem.id),
            func.sum(OrderItem.price),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(in_range)
        .group_by(OrderItem.asset_id)
        .order_by(func.count(OrderItem.id).desc(), OrderItem.asset_id)
        .limit(TOP_LIMIT)
    ).all()

    total_revenue = sum(b["total_revenue"] for b in sales_data)
    total_orders = sum(b["order_count"] for b in sales_data)

    return {
        "start": start,
        "end": end,
        "period": period,
        "sales_data": sales_data,
        "top_selling_assets": [
            {"asset_id": asset_id, "title": title, "total_sold": sold, "total_revenue": revenue}
            for asset_id, title, sold, revenue in top
        ],
        "summary": {
            "total_revenue": total_revenue,
            "total_orders": total_orders,
            "average_order_value": total_revenue / total_orders if total_orders else 0,
        },
    }


def user_to_dict(user: User) -> dict:
    # password hash never leaves the server
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "can_login": user.can_login,
        "created_at": user.created_at,
    }


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    return paginate(session=session, query=query, page=page, limit=limit, transform=user_to_dict)
