"""Shop service routers package."""

from services.shop_service.routers.admin_catalog import router as admin_catalog_router
from services.shop_service.routers.auth import router as auth_router
from services.shop_service.routers.catalog import router as catalog_router
from services.shop_service.routers.orders import router as orders_router
from services.shop_service.routers.users import router as users_router

__all__ = [
    "admin_catalog_router",
    "auth_router",
    "catalog_router",
    "orders_router",
    "users_router",
]
