import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from kitchen_stock.core.exceptions import InventoryError
from kitchen_stock.core.observability import (
    http_exception_handler,
    inventory_error_handler,
    log_event,
    logger,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from kitchen_stock.core.config import settings
from kitchen_stock.db.session import engine
from kitchen_stock.routers import consumption, inventory, menu, orders, products, reports, stocktake

app = FastAPI(
    title=settings.app_name,
    version="0.3.0",
    description=(
        "Ingredient inventory and stock reconciliation API for restaurant kitchens.\n\n"
        "Swagger quick test flow:\n"
        "1. Create products with `POST /products`.\n"
        "2. Create a purchase order and confirm it with `PATCH /purchase-orders/{order_id}/status`.\n"
        "3. Record waste, staff meals and dish sales, count stock with `POST /editable-inventory/upsert`, "
        "then read `/reports/inventory-grid`.\n\n"
        "Send `X-Operator-Name` to attribute changes in the audit trail."
    ),
    swagger_ui_parameters={
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "products", "description": "Ingredient catalog, units and pricing."},
        {"name": "menu", "description": "Recipes and dishes with their ingredient lines."},
        {"name": "consumption", "description": "Waste, staff meals and dish sales."},
        {"name": "inventory", "description": "Stock movement ledger and corrections."},
        {"name": "purchase-orders", "description": "Supplier orders; confirmation receives goods into the ledger."},
        {"name": "stocktake", "description": "Editable inventory counts and dated stocktakes."},
        {"name": "reports", "description": "Outbound breakdown, variance grid and food-cost metrics."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(InventoryError, inventory_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # local tooling serves the kitchen UI from dynamic localhost ports
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(products.router)
app.include_router(menu.router)
app.include_router(consumption.router)
app.include_router(inventory.router)
app.include_router(orders.router)
app.include_router(stocktake.router)
app.include_router(reports.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event(logger, "readiness.database_unavailable", level=logging.WARNING, error=str(exc))
        return {"ok": False}
    return {"ok": True}
