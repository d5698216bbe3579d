"""Shop Service models package."""

from services.shop_service.models.accounts import User
from services.shop_service.models.catalog import Category, Product
from services.shop_service.models.commerce import Order, OrderItem
from services.shop_service.models.enums import (
    ORDER_STATUS_FLOW,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    StockMovementType,
    UserRole,
)
from services.shop_service.models.inventory import StockMovement

__all__ = [
    "Category",
    "ORDER_STATUS_FLOW",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "StockMovement",
    "StockMovementType",
    "TERMINAL_ORDER_STATUSES",
    "User",
    "UserRole",
]
