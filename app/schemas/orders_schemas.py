from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class OrderLine(BaseModel):
    asset_id: int
    title: str
    price: float


class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: str
    total: float
    assets: List[OrderLine]
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderHistory(BaseModel):
    orders: List[OrderResponse]
