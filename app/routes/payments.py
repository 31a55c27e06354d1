from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.database import get_session
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.services.webhook_service import handle_webhook_event

router = APIRouter()


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    # signature is computed over the exact bytes; never parse before verifying
    payload = await request.body()
    return await run_in_threadpool(
        handle_webhook_event, session, gateway, payload, stripe_signature
    )
