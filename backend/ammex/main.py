"""
Ammex - Backend API
B2B catalog, ordering, invoicing and payment tracking
"""
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.exceptions import HTTPException  # noqa: E402

from ammex.api import (  # noqa: E402
    auth,
    cart,
    catalog,
    checkout,
    customers,
    dashboard,
    discounts,
    invoices,
    items,
    notifications,
    orders,
    payments,
    suppliers,
    tiers,
)
from ammex.core.config import settings  # noqa: E402
from ammex.core.database import CONNECTION_TIMEOUT, get_db_connection_with_retry  # noqa: E402
from ammex.core.exceptions import AmmexError  # noqa: E402
from ammex.core.logging_config import configure_logging  # noqa: E402

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# =============================================================================
# Error envelope
# =============================================================================

@app.exception_handler(AmmexError)
def handle_ammex_error(request: Request, exc: AmmexError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
def handle_http_exception(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Something went wrong!"},
    )


# =============================================================================
# Routers
# =============================================================================

prefix = settings.API_PREFIX

app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(customers.router, prefix=f"{prefix}/customers", tags=["Customers"])
app.include_router(suppliers.router, prefix=f"{prefix}/suppliers", tags=["Suppliers"])
app.include_router(catalog.categories_router, prefix=f"{prefix}/categories", tags=["Categories"])
app.include_router(catalog.units_router, prefix=f"{prefix}/units", tags=["Units"])
app.include_router(items.router, prefix=f"{prefix}/items", tags=["Items"])
app.include_router(items.products_router, prefix=f"{prefix}/products", tags=["Products"])
app.include_router(discounts.router, prefix=f"{prefix}/discounts", tags=["Discounts"])
app.include_router(tiers.router, prefix=f"{prefix}/settings/tiers", tags=["Tiers"])
app.include_router(cart.router, prefix=f"{prefix}/cart", tags=["Cart"])
app.include_router(checkout.router, prefix=f"{prefix}/checkout", tags=["Checkout"])
app.include_router(orders.router, prefix=f"{prefix}/orders", tags=["Orders"])
app.include_router(invoices.router, prefix=f"{prefix}/invoices", tags=["Invoices"])
app.include_router(payments.router, prefix=f"{prefix}/payments", tags=["Payments"])
app.include_router(notifications.router, prefix=f"{prefix}/notifications", tags=["Notifications"])
app.include_router(dashboard.router, prefix=f"{prefix}/dashboard", tags=["Dashboard"])
app.include_router(dashboard.analytics_router, prefix=f"{prefix}/analytics", tags=["Analytics"])


@app.get("/")
def root():
    return {
        "message": "Ammex API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
@app.get(f"{prefix}/health")
def health():
    """Health check - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
        conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        cursor = conn.cursor()

        db_start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        db_latency_ms = round((time.time() - db_start) * 1000, 2)

        cursor.close()
        conn.close()
        db_status = "connected"
    except Exception as e:
        db_status = "disconnected"
        db_error = str(e)

    return {
        "success": db_status == "connected",
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "ammex-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
            "connection_timeout_s": CONNECTION_TIMEOUT,
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
    }
