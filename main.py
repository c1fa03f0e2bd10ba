"""
SKU Reconciliation Engine API.

Serves the per-SKU reconciled view and calendar trend statistics over
the spreadsheet snapshot. Run with `python main.py` or
`uvicorn main:app`.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from exceptions import AppError

logging.basicConfig(format="%(message)s", level=settings.log_level)

# structlog on top of stdlib logging; JSON lines in production
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

API_VERSION = "0.1.0"


def _engine_settings() -> dict:
    return {
        "reference_timezone": settings.reference_timezone,
        "sales_window_days": settings.sales_window_days,
        "weekly_sales_slots": settings.weekly_sales_slots,
        "moving_average_period": settings.moving_average_period,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the engine configuration on startup; nothing to release on shutdown."""
    logger.info(
        "application_starting",
        environment=settings.environment,
        **_engine_settings(),
    )
    if not settings.sheets_configured:
        logger.warning("sheets_not_configured", hint="Live snapshot routes will return 503")

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="SKU Reconciliation Engine",
    description="Per-SKU reconciliation and calendar trend statistics over spreadsheet snapshots",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Degraded when no spreadsheet API is configured: posted snapshots and
    trends still work, live snapshot routes do not.
    """
    return {
        "status": "healthy" if settings.sheets_configured else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "sheets_configured": settings.sheets_configured,
        "engine": _engine_settings(),
    }


@app.get("/")
async def root():
    """API information and available endpoints."""
    return {
        "name": "SKU Reconciliation Engine API",
        "version": API_VERSION,
        "docs": "/docs" if settings.debug else "Disabled in production",
        "endpoints": {
            "sku_groups": "/api/reconciliation/sku-groups",
            "inventory_status": "/api/reconciliation/inventory-status",
            "profitability": "/api/reconciliation/profitability",
            "trends": "/api/trends",
            "sales_trend": "/api/trends/sales",
        },
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render application errors in the standard error format."""
    logger.warning("app_error", path=request.url.path, code=exc.code, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Anything else becomes a 500 in the same error format."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes import reconciliation_router, trends_router

app.include_router(reconciliation_router, prefix="/api/reconciliation", tags=["Reconciliation"])
app.include_router(trends_router, prefix="/api/trends", tags=["Trends"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
