from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.order import Order
from app.models.user import User
from app.routes.user_orders import order_to_response
from app.services.order_expiry_service import expire_stale_orders
from app.utils.pagination import paginate

router = APIRouter()


@router.get("/")
def list_orders(
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    query = select(Order)

    if status:
        query = query.where(Order.status == status)
    if user_id is not None:
        query = query.where(Order.user_id == user_id)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        transform=lambda o: order_to_response(o).model_dump(),
    )


@router.post("/expire-stale")
def expire_stale(
    older_than_minutes: Optional[int] = Query(None, ge=1),
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    older_than = timedelta(minutes=older_than_minutes) if older_than_minutes else None
    cancelled = expire_stale_orders(session, older_than=older_than)
    return {"cancelled": len(cancelled), "order_ids": cancelled}
