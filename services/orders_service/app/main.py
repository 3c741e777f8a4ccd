"""FastAPI application for the Orders Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.orders_service.routers import admin_orders_router


def create_app() -> FastAPI:
    """Create and configure the Orders Service FastAPI app."""
    app = FastAPI(
        title="Bakery Admin Orders Service",
        version="0.1.0",
        description="Admin order management - totals, status lifecycle, refunds and revenue.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    app.include_router(admin_orders_router, prefix="/admin")

    return app


app = create_app()
