# app/services/webhook_service.py
import logging
from typing import Any, Callable, Dict, Optional

from sqlmodel import Session, select

from app.constants.order_status import TERMINAL_STATUSES, OrderStatus
from app.models.order import Order
from app.models.order_item import OrderItem
from app.services import entitlement_service, order_ledger
from app.services.payment_gateway import PaymentGateway
from app.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"
PAYMENT_FAILED = "payment_intent.payment_failed"


def _metadata(obj: Dict[str, Any]) -> Dict[str, Any]:
    return obj.get("metadata") or {}


def _parse_id(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _resolve_order(session: Session, obj: Dict[str, Any]) -> Optional[Order]:
    """
    Map a Stripe object back to our order: metadata written at session
    creation first, then the stored session id.
    """
    order_id = _parse_id(_metadata(obj).get("order_id"))
    session_token = obj.get("id") if obj.get("object") == "checkout.session" else None

    order = session.get(Order, order_id) if order_id is not None else None
    if order is None and session_token:
        order = order_ledger.find_by_session_token(session, session_token)

    if order is None:
        logger.warning(
            "Webhook references unknown order (order_id=%s, session=%s)",
            order_id, session_token,
        )
        return None

    if session_token and order.stripe_session_id and order.stripe_session_id != session_token:
        logger.warning(
            "Webhook session %s does not match order %s session %s; ignoring",
            session_token, order.id, order.stripe_session_id,
        )
        return None

    return order


def _on_checkout_completed(session: Session, obj: Dict[str, Any]) -> None:
    order = _resolve_order(session, obj)
    if order is None:
        return

    claimed_user = _parse_id(_metadata(obj).get("user_id"))
    if claimed_user is not None and claimed_user != order.user_id:
        logger.warning(
            "Webhook user %s differs from order %s owner %s; using owner",
            claimed_user, order.id, order.user_id,
        )

    try:
        updated = order_ledger.transition_status(
            session,
            order.id,
            OrderStatus.COMPLETED,
            created_by="stripe",
            stripe_payment_intent_id=obj.get("payment_intent"),
        )
    except NotFoundError:
        logger.warning("Order %s vanished before completion", order.id)
        return

    if updated is None:
        if order.status in TERMINAL_STATUSES and order.status != OrderStatus.COMPLETED:
            # money captured for an order we already closed
            logger.error(
                "Payment completed for order %s in terminal state %s (user %s); needs reconciliation",
                order.id, order.status, order.user_id,
            )
        session.commit()
        return

    asset_ids = session.exec(
        select(OrderItem.asset_id).where(OrderItem.order_id == order.id)
    ).all()
    granted = entitlement_service.grant(session, updated.user_id, asset_ids)
    session.commit()

    missing = sorted(set(asset_ids) - set(granted))
    if missing:
        # paid for, but deleted from the catalog before the payment landed
        logger.error(
            "Order %s paid by user %s includes deleted assets %s; needs reconciliation",
            order.id, updated.user_id, missing,
        )

    logger.info("Order %s completed for user %s", order.id, updated.user_id)


def _on_checkout_failed(session: Session, obj: Dict[str, Any]) -> None:
    order = _resolve_order(session, obj)
    if order is None:
        return

    try:
        updated = order_ledger.transition_status(
            session, order.id, OrderStatus.FAILED, created_by="stripe"
        )
    except NotFoundError:
        logger.warning("Order %s vanished before failure", order.id)
        return

    session.commit()
    if updated is not None:
        logger.info("Order %s marked failed for user %s", order.id, order.user_id)


HANDLERS: Dict[str, Callable[[Session, Dict[str, Any]], None]] = {
    CHECKOUT_COMPLETED: _on_checkout_completed,
    CHECKOUT_EXPIRED: _on_checkout_failed,
    PAYMENT_FAILED: _on_checkout_failed,
}


def handle_webhook_event(
    session: Session,
    gateway: PaymentGateway,
    payload: bytes,
    signature: Optional[str],
) -> Dict[str, Any]:
    """
    Verify and apply one gateway event. Nothing is read from the payload
    until the signature checks out.
    """
    event = gateway.construct_event(payload, signature)
    event_type = event["type"]

    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return {"received": True}

    data = event.get("data") or {}
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise ValidationError("Malformed payload")

    logger.info("Processing %s (event %s)", event_type, event.get("id"))
    handler(session, obj)

    return {"received": True}
