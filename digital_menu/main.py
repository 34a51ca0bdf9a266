"""
FastAPI application for the digital menu backend.

Routes:
    - /api/establishments: registration and profile
    - /api/establishments/{id}/categories|products|orders: back office,
      requires an active subscription
    - /api/public/menu/{id}: what customers browse
    - POST /api/orders: customer checkout into a WhatsApp link
    - /api/billing: subscription checkout and payment webhook
    - GET /health
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as aioredis
from redis.exceptions import RedisError

# psycopg's async driver needs the selector loop on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from digital_menu.api import api_router
from digital_menu.core.config import get_settings, setup_logging
from digital_menu.core.exceptions import DigitalMenuError
from digital_menu.database import engine, get_db, init_db
from digital_menu.schemas import HealthResponse
from digital_menu.services.notifications import get_notification_service
from digital_menu.services.payment import get_payment_service

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 60)
    logger.info(f"🍔 {settings.app_name} v{settings.app_version} ({settings.env_mode.value})")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database schema ready")

    logger.info(f"✅ Payments via {get_payment_service().provider_name}")
    if settings.order_alerts_enabled:
        logger.info(f"✅ Order alerts via {get_notification_service().provider_name}")
    else:
        logger.info("ℹ️ Order alerts disabled; customers still get the WhatsApp link")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing configuration: {', '.join(missing)}")

    yield

    logger.info("Shutting down, closing database pool")
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description=(
        "Digital menu ordering backend. Establishments publish a menu, "
        "customers order from it, and each order is priced server-side and "
        "rendered into a WhatsApp message."
    ),
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


# =============================================================================
# ROOT & HEALTH
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


async def probe_database(db: AsyncSession) -> str:
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f"unhealthy: {e}"
    return "healthy"


async def probe_redis() -> str:
    client = aioredis.Redis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error(f"Redis health check failed: {e}")
        return f"unhealthy: {e}"
    finally:
        await client.aclose()
    return "healthy"


@app.get("/health", response_model=HealthResponse, tags=["Health"], summary="System Health Check")
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Database, broker and external providers. Degraded if any is down."""
    checks = {
        "database": await probe_database(db),
        "redis": await probe_redis(),
        "payment_service": "healthy" if await get_payment_service().health_check() else "unhealthy",
        "notification_service": "healthy" if await get_notification_service().health_check() else "unhealthy",
    }
    overall = "operational" if all(v == "healthy" for v in checks.values()) else "degraded"

    return HealthResponse(status=overall, timestamp=datetime.now(), **checks)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(DigitalMenuError)
async def domain_exception_handler(request: Request, exc: DigitalMenuError) -> JSONResponse:
    """Expected failures become ``{message, error}`` bodies."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same envelope as domain errors, plus per-field detail."""
    fields = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.info(f"validation_error on {request.method} {request.url.path}: {len(fields)} field(s)")
    return JSONResponse(
        status_code=422,
        content={
            "message": "; ".join(f"{f['field']}: {f['message']}" for f in fields) or "Invalid request",
            "error": "validation_error",
            "fields": fields,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "message": str(exc) if settings.debug else "An unexpected error occurred",
            "error": "internal_error",
        },
    )
