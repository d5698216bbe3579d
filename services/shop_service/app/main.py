"""FastAPI application for the Shop Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.db.config import create_database
from services.shop_service.routers import (
    admin_catalog_router,
    auth_router,
    catalog_router,
    orders_router,
    users_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = create_database()
    await db.connect()
    app.state.db = db
    try:
        yield
    finally:
        await db.disconnect()


def create_app() -> FastAPI:
    """Create and configure the Shop Service FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="FreshCart Shop Service",
        version="0.1.0",
        description="Fresh produce storefront - catalog, accounts and orders.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/api/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "OK", "message": "Fruit shop API is running"}

    # Public routes (catalog, accounts, orders)
    app.include_router(auth_router, prefix="/api")
    app.include_router(catalog_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    # Admin catalog management
    app.include_router(admin_catalog_router, prefix="/api")

    return app


app = create_app()
