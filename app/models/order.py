from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime
from sqlalchemy import DateTime

from app.constants.order_status import OrderStatus
from app.models.order_item import OrderItem
from app.utils.timestamps import utcnow


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    total: float = Field(ge=0)
    status: str = Field(default=OrderStatus.PENDING, index=True)

    # one order <-> one Stripe Checkout session
    stripe_session_id: Optional[str] = Field(default=None, index=True, unique=True)
    stripe_payment_intent_id: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    items: List["OrderItem"] = Relationship(back_populates="order")
