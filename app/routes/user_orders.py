from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.models.order import Order
from app.models.user import User
from app.schemas.orders_schemas import OrderHistory, OrderLine, OrderResponse
from app.services import order_ledger
from app.services.order_event_service import order_timeline
from app.utils.token import get_current_user

router = APIRouter()


def order_to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total=order.total,
        assets=[
            OrderLine(asset_id=i.asset_id, title=i.title, price=i.price)
            for i in sorted(order.items, key=lambda i: i.id)
        ],
        stripe_session_id=order.stripe_session_id,
        stripe_payment_intent_id=order.stripe_payment_intent_id,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


@router.get("", response_model=OrderHistory)
def order_history(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    orders = order_ledger.list_by_user(session, current_user.id)
    return OrderHistory(orders=[order_to_response(o) for o in orders])


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = order_ledger.get_for_user(session, order_id, current_user.id)
    return order_to_response(order)


# Track Orders

@router.get("/{order_id}/track")
def track_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order = order_ledger.get_for_user(session, order_id, current_user.id)

    return {
        "order_id": order.id,
        "status": order.status,
        "timeline": [
            {
                "event": e.event_type,
                "label": e.label,
                "at": e.created_at,
                "by": e.created_by,
            }
            for e in order_timeline(session, order.id)
        ],
    }
