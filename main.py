"""
SKU Mapping Service: FastAPI entry point.

Run locally:
    uvicorn main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from config import settings, check_connection
from exceptions import AppError

API_PREFIX = "/api/sku-mappings"

logging.basicConfig(
    format="%(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)

# JSON logs in production, coloured console output otherwise
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


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration and catalog size on startup."""
    logger.info(
        "sku_mapping_service_starting",
        environment=settings.environment,
        fuzzy_threshold=settings.sku_fuzzy_threshold,
        detection_enabled=settings.sku_detection_enabled
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info("database_connected", **db_status["tables"])
    else:
        logger.error("database_connection_failed", error=db_status.get("error"))

    yield

    logger.info("sku_mapping_service_stopped")


app = FastAPI(
    title="SKU Mapping Service",
    description="Canonical SKU catalog, customer SKU detection and mapping import/export",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    # Browser downloads need the export filename
    expose_headers=["Content-Disposition"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """Service and database status."""
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": db_status
    }


@app.get("/")
async def root():
    """API information and available endpoints."""
    return {
        "name": "SKU Mapping API",
        "version": app.version,
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "sku_mappings": API_PREFIX,
            "detect": f"{API_PREFIX}/detect",
            "auto_map": f"{API_PREFIX}/auto-map",
            "resolve": f"{API_PREFIX}/resolve/{{variation_sku}}",
            "import": f"{API_PREFIX}/import",
            "export": f"{API_PREFIX}/export",
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """AppErrors raised outside a route's own try block."""
    logger.warning(
        "app_error",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything else becomes INTERNAL_ERROR."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.sku_mappings import router as sku_mappings_router

app.include_router(sku_mappings_router, prefix=API_PREFIX, tags=["SKU Mappings"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
