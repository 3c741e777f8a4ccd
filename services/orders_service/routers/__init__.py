"""Orders service routers package."""

from services.orders_service.routers.admin_orders import router as admin_orders_router

__all__ = [
    "admin_orders_router",
]
