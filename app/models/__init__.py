from app.models.user import User
from app.models.asset import Asset, AssetCategory
from app.models.entitlement import AssetEntitlement, EntitlementKind
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.order_event import OrderEvent

# add ALL models here
