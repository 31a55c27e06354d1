import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlmodel import select, Session

from app.config import settings
from app.constants.order_status import OrderStatus
from app.models.order import Order
from app.services import order_ledger
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def expire_stale_orders(
    session: Session,
    older_than: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> List[int]:
    """
    Cancel pending orders nobody paid for. Each order goes through the same
    guarded transition as the webhook, so a payment that lands mid-sweep wins.
    """
    if older_than is None:
        older_than = timedelta(minutes=settings.pending_order_ttl_minutes)
    cutoff = (now or utcnow()) - older_than

    stale_ids = session.exec(
        select(Order.id)
        .where(Order.status == OrderStatus.PENDING)
        .where(Order.created_at < cutoff)
    ).all()

    cancelled = []
    for order_id in stale_ids:
        order = order_ledger.transition_status(
            session, order_id, OrderStatus.CANCELLED, created_by="expiry_sweep"
        )
        if order is not None:
            cancelled.append(order_id)

    session.commit()

    logger.info("Cancelled %d abandoned pending orders", len(cancelled))
    return cancelled
