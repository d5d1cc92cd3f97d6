"""
Flight Booking API - Main Application Entry Point

Seat inventory and booking lifecycle for an airline:
- Oversell-proof seat holds via conditional updates on the seat pool
- Idempotent reconciliation of payment gateway callbacks
- Background reclaimer that cancels unpaid holds before departure
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flight_booking.core.config import get_settings
from flight_booking.core.logging import setup_logging, get_logger
from flight_booking.core.exceptions import register_exception_handlers
from flight_booking.core.metrics import metrics_endpoint
from flight_booking.api.router import api_router
from flight_booking.api.middleware import RequestLoggingMiddleware
from flight_booking.db.session import get_sessionmaker
from flight_booking.services.cache_service import get_redis, close_redis, get_cache_stats
from flight_booking.services.expiry_service import ExpiryReclaimer

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    reclaimer = None
    if settings.RECLAIM_ENABLED:
        reclaimer = ExpiryReclaimer(
            get_sessionmaker(),
            interval_seconds=settings.RECLAIM_INTERVAL_SECONDS,
            batch_size=settings.RECLAIM_BATCH_SIZE,
            grace_minutes=settings.HOLD_GRACE_MINUTES,
            failure_backoff_seconds=settings.RECLAIM_FAILURE_BACKOFF_SECONDS,
        )
        reclaimer.start()
    app.state.reclaimer = reclaimer

    yield

    if reclaimer is not None:
        await reclaimer.stop()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Airline seat inventory and booking lifecycle API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    reclaimer = getattr(app.state, "reclaimer", None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "reclaimer": "running" if reclaimer is not None and reclaimer.running else "stopped",
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
