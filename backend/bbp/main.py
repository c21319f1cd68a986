"""
Best Bike Paths Backend - FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn bbp.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌────────────┐ │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│ CORS/GZip  │ │
    │  └────────────┘ └──────────┘ └─────────┘ └────────────┘ │
    │                                                          │
    │  Routers (/api/v1):                                      │
    │  ┌────────┐ ┌──────────┐ ┌────────┐ ┌─────────────────┐ │
    │  │ paths  │ │ reports  │ │ trips  │ │ GET /health     │ │
    │  └────────┘ └──────────┘ └────────┘ └─────────────────┘ │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐ │
    │  │ BBPError → its status_code │ Exception → 500      │ │
    │  └────────────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, log the engine policy
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from bbp import __version__
from bbp.config import settings
from bbp.database import dispose_engine
from bbp.exceptions import (
    BBPError,
    CircuitBreakerOpenError,
    DatabaseError,
    GeocodingError,
    RateLimitExceededError,
)
from bbp.middleware.logging import RequestLoggingMiddleware
from bbp.middleware.rate_limit import RateLimitMiddleware
from bbp.middleware.request_id import RequestIDMiddleware, request_id_var
from bbp.routes import health, paths, reports, stats, trips

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configures the root logger once, before anything else logs."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Best Bike Paths Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and non-search endpoints still work
        logger.error("Configuration error: %s", str(e))

    policy = settings.health_policy()
    logger.info(
        "Health policy: alpha=%.2f beta=%.2f half_life=%.0fmin reliability=[%.2f, %.2f] "
        "weights=%.2f/%.2f",
        policy.report_alpha,
        policy.report_beta,
        policy.report_half_life_minutes,
        policy.min_reliability,
        policy.max_reliability,
        policy.reported_weight,
        policy.all_weight,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Best Bike Paths Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps the application exceptions onto JSON error responses.

    Body:    {"error": <code>, "message": ..., "details": ..., "request_id": ...}
    Headers: Retry-After on 429, 502 (when known) and 503.

    DatabaseError and unexpected exceptions never expose their context; it is
    logged server-side only.
    """

    @app.exception_handler(BBPError)
    async def handle_app_error(request: Request, exc: BBPError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.code, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, exc.code, exc.message)

        content = {
            "error": exc.code,
            "message": exc.message,
            "details": exc.context or None,
            "request_id": rid,
        }
        if isinstance(exc, DatabaseError):
            content["message"] = "An internal error occurred. Please try again later."
            content["details"] = None

        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        elif isinstance(exc, CircuitBreakerOpenError):
            headers["Retry-After"] = str(exc.recovery_time)
        elif isinstance(exc, GeocodingError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "details": None,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Best Bike Paths API",
        description=(
            "Community bike paths with crowd-sourced health status. Riders save paths, "
            "report hazards on segments, and search for the healthiest route between two "
            "addresses."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(paths.router)
    app.include_router(reports.router)
    app.include_router(trips.router)
    app.include_router(stats.router)
    app.include_router(health.router)

    return app


app = create_app()
