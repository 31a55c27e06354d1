from sqlmodel import SQLModel, Field , Relationship
from typing import Optional , TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.order import Order

class OrderItem(SQLModel, table=True):
    """Snapshot of an asset's title and price at checkout time."""

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    asset_id: int = Field(index=True)

    title: str
    price: float = Field(ge=0)

    order: Optional["Order"] = Relationship(back_populates="items")
