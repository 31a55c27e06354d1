from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.schemas.checkout_schemas import CheckoutRequest, CheckoutResponse
from app.services.checkout_service import create_checkout
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.utils.token import get_current_user

router = APIRouter()


@router.post("", response_model=CheckoutResponse, response_model_exclude_none=True)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    """Free carts complete immediately; paid carts return a Stripe Checkout URL."""
    return create_checkout(session, gateway, current_user, payload.asset_ids)
