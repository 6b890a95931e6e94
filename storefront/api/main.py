from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.routers import (
    addresses,
    auth,
    cart,
    catalog,
    coupons,
    dashboard,
    inventory,
    media,
    notifications,
    orders,
    products,
    returns,
    reviews,
    settings,
    stock_notifications,
    users,
)
from storefront.core.config import get_settings
from storefront.core.errors import register_error_handlers
from storefront.core.log import add_timing_middleware, configure_logging
from storefront.db.session import db_healthcheck, init_db

config = get_settings()
configure_logging(config.log_level)

openapi_tags = [
    {"name": "Health", "description": "Service and dependency health checks."},
    {"name": "Auth", "description": "Registration, login and sessions."},
    {"name": "Products", "description": "Catalog browsing and product management."},
    {"name": "Categories", "description": "Category tree."},
    {"name": "Brands", "description": "Brands."},
    {"name": "Cart", "description": "Server-side cart of the signed-in user."},
    {"name": "Coupons", "description": "Coupon validation and management."},
    {"name": "Orders", "description": "Checkout, payment verification and order management."},
    {"name": "Returns", "description": "Return requests (RMA)."},
    {"name": "Reviews", "description": "Product reviews and moderation."},
    {"name": "Addresses", "description": "Address book."},
    {"name": "Customers", "description": "Customer management."},
    {"name": "Inventory", "description": "Stock levels, low-stock alerts and back-in-stock subscriptions."},
    {"name": "Media", "description": "Media library and image uploads."},
    {"name": "Settings", "description": "Store settings."},
    {"name": "Notifications", "description": "Back-office event feed."},
    {"name": "Dashboard", "description": "Dashboard counters and sales reports."},
]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if config.db_auto_create:
        init_db()
    yield


app = FastAPI(
    title="Storefront API",
    description="Storefront and back-office service (catalog, cart, checkout, orders, media, reviews, reports).",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
add_timing_middleware(app)
register_error_handlers(app)

for router in (
    auth.router,
    products.router,
    products.admin_router,
    catalog.categories,
    catalog.admin_categories,
    catalog.brands,
    catalog.admin_brands,
    cart.router,
    coupons.router,
    coupons.admin_router,
    orders.router,
    orders.admin_router,
    returns.router,
    returns.admin_router,
    reviews.router,
    reviews.admin_router,
    addresses.router,
    users.admin_router,
    inventory.admin_router,
    stock_notifications.router,
    stock_notifications.admin_router,
    media.admin_router,
    settings.router,
    settings.admin_router,
    notifications.admin_router,
    dashboard.admin_router,
):
    app.include_router(router)


@app.get("/", tags=["Health"], summary="Service health check")
def health_check():
    """Basic health check for the backend service (no external dependencies)."""
    return {"message": "Healthy"}


@app.get("/health/db", tags=["Health"], summary="Database health check")
def health_db_check():
    """
    Check database connectivity.

    Returns a JSON payload indicating whether the database is reachable.
    """
    ok = db_healthcheck()
    return {"database": "ok" if ok else "unreachable", "ok": ok}
