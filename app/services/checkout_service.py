# app/services/checkout_service.py
import logging
from datetime import timedelta
from typing import Any, Dict, List, Sequence

from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import OrderStatus
from app.models.asset import Asset
from app.models.user import User
from app.services import entitlement_service, order_ledger
from app.services.payment_gateway import PaymentGateway
from app.utils.errors import ConflictError, ValidationError
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def _dedupe(asset_ids: Sequence[int]) -> List[int]:
    seen = set()
    ordered = []
    for asset_id in asset_ids:
        if asset_id not in seen:
            seen.add(asset_id)
            ordered.append(asset_id)
    return ordered


def _lock_user(session: Session, user_id: int) -> None:
    # serialises concurrent checkouts of one user (no-op on sqlite)
    session.exec(
        select(User.id).where(User.id == user_id).with_for_update()
    ).first()


def resolve_assets(session: Session, asset_ids: Sequence[int]) -> List[Asset]:
    """All-or-nothing lookup, returned in request order."""
    if not asset_ids:
        raise ValidationError("Asset IDs required")

    found = session.exec(select(Asset).where(Asset.id.in_(asset_ids))).all()
    if len(found) != len(asset_ids):
        raise ValidationError("Some assets not found")

    by_id = {a.id: a for a in found}
    return [by_id[asset_id] for asset_id in asset_ids]


def create_checkout(
    session: Session,
    gateway: PaymentGateway,
    user: User,
    asset_ids: Sequence[int],
) -> Dict[str, Any]:
    """
    Turn a cart of asset ids into an order.

    Free carts complete immediately and grant ownership; paid carts get a
    pending order plus a Stripe Checkout session to redirect to.
    """
    asset_ids = _dedupe(asset_ids)
    _lock_user(session, user.id)
    assets = resolve_assets(session, asset_ids)

    # 1. premium ownership conflicts reject the whole cart
    premium = [a for a in assets if a.is_premium]
    owned = entitlement_service.owned_asset_ids(session, user.id, [a.id for a in premium])
    if owned:
        titles = ", ".join(a.title for a in premium if a.id in owned)
        raise ConflictError(f"You already own: {titles}")

    cutoff = utcnow() - timedelta(minutes=settings.pending_order_ttl_minutes)
    in_flight = order_ledger.in_flight_asset_ids(session, user.id, [a.id for a in premium], cutoff)
    if in_flight:
        titles = ", ".join(a.title for a in premium if a.id in in_flight)
        raise ConflictError(f"A checkout is already in progress for: {titles}")

    # 2. snapshot every line at today's price
    snapshot = [
        {"asset_id": a.id, "price": a.price, "title": a.title}
        for a in assets
    ]
    total = sum(line["price"] for line in snapshot)

    # 3. free fast path, no gateway involved
    if total == 0:
        order = order_ledger.create_order(
            session, user.id, snapshot, total=0, status=OrderStatus.COMPLETED
        )
        entitlement_service.grant(session, user.id, [a.id for a in assets])
        session.commit()
        session.refresh(order)

        logger.info("Free order %s completed for user %s", order.id, user.id)
        return {
            "success": True,
            "message": "Free assets added to your account",
            "order_id": order.id,
            "status": order.status,
            "total": order.total,
        }

    # 4. paid path: persist first so the webhook can always find the order
    order = order_ledger.create_order(
        session, user.id, snapshot, total=total, status=OrderStatus.PENDING
    )
    session.commit()
    session.refresh(order)
    logger.info("Pending order %s created for user %s, total %.2f", order.id, user.id, total)

    try:
        checkout = gateway.create_checkout_session(order, assets)
    except Exception:
        # stays pending until the expiry sweep cancels it
        logger.error(
            "Order %s for user %s left pending: payment session was not created",
            order.id, user.id,
        )
        raise

    order_ledger.attach_session_token(session, order, checkout.id)
    session.commit()

    return {
        "order_id": order.id,
        "status": order.status,
        "total": order.total,
        "session_id": checkout.id,
        "session_url": checkout.url,
    }
