# app/schemas/checkout_schemas.py
from pydantic import BaseModel
from typing import List, Optional


class CheckoutRequest(BaseModel):
    asset_ids: List[int]


class CheckoutResponse(BaseModel):
    order_id: int
    status: str
    total: float
    session_id: Optional[str] = None
    session_url: Optional[str] = None   # absent on the free path
    message: Optional[str] = None
