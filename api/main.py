"""
FastAPI API Service Entry Point
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.routes import bookings, payments, rooms
from booking.services.reconciliation_service import NotificationReconciler
from booking.transactions.reservation_transaction import ReservationTransaction
from database.connection import build_engine, build_session_factory
from database.reservation_store import ReservationStore
from shared.config import get_settings
from shared.errors import BookingError
from shared.logging_config import configure_logging
from shared.startup_validator import StartupValidationError, validate_startup_config
from shared.stripe_client import StripePaymentBridge

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build the long-lived components once and expose them on app.state.

    Fails fast (StartupValidationError) when Stripe keys are placeholders in
    production or the database is unreachable.
    """
    settings = get_settings()
    engine = build_engine()

    logger.info("Running API startup configuration validation...")
    try:
        await validate_startup_config(
            engine, require_stripe=settings.ENVIRONMENT == "production"
        )
        logger.info("API startup configuration validation passed")
    except StartupValidationError as e:
        logger.critical(f"API startup blocked due to configuration errors: {e}")
        await engine.dispose()
        raise

    session_factory = build_session_factory(engine)
    store = ReservationStore()
    payments = StripePaymentBridge(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        currency=settings.PAYMENT_CURRENCY,
    )
    default_tz = ZoneInfo(settings.TIMEZONE)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.store = store
    app.state.default_tz = default_tz
    app.state.reservation_transaction = ReservationTransaction(
        session_factory, store, payments, default_tz=default_tz
    )
    app.state.reconciler = NotificationReconciler(session_factory, store, payments)

    yield

    await engine.dispose()


app = FastAPI(
    title="Room Booking API",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(rooms.router, tags=["rooms"])
app.include_router(bookings.router, tags=["bookings"])
app.include_router(payments.router, prefix="/webhooks", tags=["webhooks"])


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Render domain errors as {error} with their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc), "code": exc.error_code},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with validation error details (missing or malformed fields)."""
    return JSONResponse(
        status_code=400,
        content={"error": "Missing fields", "details": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Returns:
        200 OK if PostgreSQL answers SELECT 1
        503 Service Unavailable otherwise
    """
    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"ok": False, "postgres": "disconnected"})

    return JSONResponse(status_code=200, content={"ok": True, "postgres": "connected"})
