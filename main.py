"""
Storefront - Application Entry Point
=====================================
FastAPI app initialization, exception handling, and router registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import settings
from config.database import Base, engine
from common.exceptions import StorefrontError, status_code_for

logger = logging.getLogger("storefront.app")


# ==========================================
# Import ALL models so Base can see them
# ==========================================
from modules.catalog.models import Product  # noqa: F401
from modules.discount.models import Discount, DiscountTarget  # noqa: F401
from modules.inventory.models import Inventory, InventoryMovement  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.pricing.routes import router as pricing_router
from modules.discount.admin_routes import router as discount_admin_router
from modules.inventory.admin_routes import router as inventory_admin_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info("Storefront pricing API started")
    yield


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Storefront Pricing",
    description="Discount resolution, cart pricing and inventory adjustments",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handler: business errors → JSON
# ==========================================
@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse({"detail": exc.to_dict()}, status_code=status_code)


# ==========================================
# Register Routers
# ==========================================
app.include_router(pricing_router)
app.include_router(discount_admin_router)
app.include_router(inventory_admin_router)


@app.get("/health")
async def health():
    return {"success": True, "status": "ok"}
