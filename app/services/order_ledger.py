# app/services/order_ledger.py
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy import update
from sqlmodel import Session, select

from app.constants.order_status import ALLOWED_TRANSITIONS, OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem
from app.services.order_event_service import log_order_event
from app.utils.errors import NotFoundError
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def create_order(
    session: Session,
    user_id: int,
    snapshot: Sequence[dict],
    total: float,
    status: str = OrderStatus.PENDING,
) -> Order:
    """
    Persist an order with its line snapshot ({asset_id, price, title}).
    Flushes so the id is available; the caller commits.
    """
    order = Order(user_id=user_id, total=total, status=status)
    session.add(order)
    session.flush()

    for line in snapshot:
        session.add(
            OrderItem(
                order_id=order.id,
                asset_id=line["asset_id"],
                title=line["title"],
                price=line["price"],
            )
        )

    log_order_event(
        session,
        order_id=order.id,
        event_type="created",
        label=f"Order created ({status})",
        created_by=f"user:{user_id}",
        meta={"total": total, "asset_ids": [line["asset_id"] for line in snapshot]},
    )
    return order


def attach_session_token(session: Session, order: Order, token: str) -> None:
    order.stripe_session_id = token
    order.updated_at = utcnow()
    session.add(order)
    log_order_event(
        session,
        order_id=order.id,
        event_type="session_created",
        label="Payment session opened",
        meta={"stripe_session_id": token},
    )


def transition_status(
    session: Session,
    order_id: int,
    to_status: str,
    allowed_from: Iterable[str] = (OrderStatus.PENDING,),
    created_by: str = "system",
    **extra,
) -> Optional[Order]:
    """
    Compare-and-swap the order status.

    Returns the updated order, or None when the order is no longer in one of
    `allowed_from` (already terminal). Raises NotFoundError for unknown ids.
    The caller commits.
    """
    sources = [s for s in allowed_from if to_status in ALLOWED_TRANSITIONS.get(s, [])]
    if not sources:
        raise ValueError(f"No allowed transition to {to_status!r} from {list(allowed_from)}")

    result = session.exec(
        update(Order)
        .where(Order.id == order_id)
        .where(Order.status.in_(sources))
        .values(status=to_status, updated_at=utcnow(), **extra)
    )

    order = session.get(Order, order_id, populate_existing=True)
    if order is None:
        raise NotFoundError("Order not found")

    if result.rowcount != 1:
        logger.info(
            "Order %s not moved to %s: status is already %s",
            order_id, to_status, order.status,
        )
        return None

    log_order_event(
        session,
        order_id=order_id,
        event_type=to_status,
        label=f"Order {to_status}",
        created_by=created_by,
        meta=extra or None,
    )
    return order


def find_by_session_token(session: Session, token: str) -> Optional[Order]:
    return session.exec(
        select(Order).where(Order.stripe_session_id == token)
    ).first()


def list_by_user(session: Session, user_id: int) -> List[Order]:
    return list(session.exec(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).all())


def get_for_user(session: Session, order_id: int, user_id: int) -> Order:
    order = session.get(Order, order_id)

    # same answer for "missing" and "someone else's"
    if not order or order.user_id != user_id:
        raise NotFoundError("Order not found")

    return order


def in_flight_asset_ids(
    session: Session,
    user_id: int,
    asset_ids: Iterable[int],
    since: datetime,
) -> Set[int]:
    """Asset ids already sitting in one of the user's pending orders created after `since`."""
    ids = list(set(asset_ids))
    if not ids:
        return set()

    return set(session.exec(
        select(OrderItem.asset_id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(Order.user_id == user_id)
        .where(Order.status == OrderStatus.PENDING)
        .where(Order.created_at >= since)
        .where(OrderItem.asset_id.in_(ids))
    ).all())
