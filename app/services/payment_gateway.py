import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

import stripe

from app.config import settings
from app.models.asset import Asset
from app.models.order import Order
from app.utils.errors import ExternalServiceError, ValidationError, WebhookSignatureError
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

# Stripe accepts expires_at between 30 minutes and 24 hours after it creates
# the session; the extra minute covers the request in flight.
MIN_SESSION_TTL = timedelta(minutes=31)
MAX_SESSION_TTL = timedelta(hours=23, minutes=59)


@dataclass
class CheckoutSession:
    id: str
    url: str


class PaymentGateway:
    """
    Stripe Checkout + webhook verification.
    Routes get it through `get_payment_gateway` so tests can swap the
    outbound half.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )
        self.currency = currency or settings.stripe_currency

    # ---------- outbound ----------

    def line_items(self, assets: Sequence[Asset]) -> List[Dict[str, Any]]:
        items = []
        for asset in assets:
            product_data: Dict[str, Any] = {"name": asset.title}
            if asset.description:
                product_data["description"] = asset.description
            if asset.image and asset.image.startswith("http"):
                product_data["images"] = [asset.image]

            items.append({
                "price_data": {
                    "currency": self.currency,
                    "product_data": product_data,
                    "unit_amount": int(round(asset.price * 100)),  # cents
                },
                "quantity": 1,
            })
        return items

    def session_ttl(self) -> timedelta:
        ttl = timedelta(minutes=settings.checkout_session_ttl_minutes)
        return min(max(ttl, MIN_SESSION_TTL), MAX_SESSION_TTL)

    def create_checkout_session(self, order: Order, assets: Sequence[Asset]) -> CheckoutSession:
        metadata = {"order_id": str(order.id), "user_id": str(order.user_id)}
        expires_at = utcnow() + self.session_ttl()

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=self.line_items(assets),
                success_url=f"{settings.base_url}/dashboard?payment=success&order={order.id}",
                cancel_url=f"{settings.base_url}/dashboard?payment=cancelled&order={order.id}",
                client_reference_id=str(order.id),
                expires_at=int(expires_at.timestamp()),
                metadata=metadata,
                # payment_intent.* events carry the same correlation
                payment_intent_data={"metadata": metadata},
                idempotency_key=f"checkout_order_{order.id}",
            )
        except stripe.StripeError as e:
            logger.error(
                "Stripe session creation failed for order %s user %s: %s",
                order.id, order.user_id, e,
            )
            raise ExternalServiceError("Payment provider unavailable") from e

        return CheckoutSession(id=session.id, url=session.url)

    # ---------- inbound ----------

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the Stripe-Signature header over the raw body, then decode.
        Fails closed when no webhook secret is configured.
        """
        if not self.webhook_secret:
            logger.error("Stripe webhook secret not configured; rejecting event")
            raise WebhookSignatureError("Webhook secret not configured")

        if not signature:
            logger.warning("Webhook received without Stripe-Signature header")
            raise WebhookSignatureError("Missing signature")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Malformed payload") from e

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed, possible tampering: %s", e)
            raise WebhookSignatureError("Invalid signature") from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise ValidationError("Malformed payload") from e

        if not isinstance(event, dict) or not event.get("type"):
            raise ValidationError("Malformed payload")

        return event


_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = PaymentGateway()
    return _gateway
