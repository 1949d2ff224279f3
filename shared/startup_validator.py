"""
Startup configuration validation module.

This module provides startup-time validation for critical configuration
to catch misconfigurations early (fail-fast) rather than at runtime when
a guest tries to book.

Usage:
    from shared.startup_validator import validate_startup_config, StartupValidationError

    async def lifespan(app):
        try:
            await validate_startup_config(engine)
        except StartupValidationError as e:
            logger.critical(f"Startup blocked: {e}")
            raise
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from shared.config import get_settings

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when critical startup validation fails."""

    pass


async def validate_startup_config(
    engine: AsyncEngine | None = None,
    require_stripe: bool = True,
) -> dict[str, bool]:
    """
    Validate all critical configuration at startup.

    Performs tiered validation:
    - TIER 1 (CRITICAL): Block startup if any fail
    - TIER 2 (IMPORTANT): Warn but allow startup

    Args:
        engine: Engine to ping. Skipped when None.
        require_stripe: If False, placeholder Stripe keys only warn (local dev).

    Returns:
        dict of {check_name: passed} for all validations

    Raises:
        StartupValidationError: If any CRITICAL check fails
    """
    settings = get_settings()
    results: dict[str, bool] = {}
    critical_failures: list[str] = []

    # =========================================================================
    # TIER 1: CRITICAL (block startup if any fail)
    # =========================================================================

    # 1. Stripe secret key
    stripe_errors: list[str] = []
    if settings.STRIPE_SECRET_KEY == "sk_test_placeholder":
        stripe_errors.append("STRIPE_SECRET_KEY is placeholder - set your Stripe secret key")
        results["stripe_secret_key"] = False
    elif not settings.STRIPE_SECRET_KEY.startswith(("sk_", "rk_")):
        stripe_errors.append("STRIPE_SECRET_KEY must be a secret or restricted key (sk_/rk_)")
        results["stripe_secret_key"] = False
    else:
        results["stripe_secret_key"] = True
        logger.info("  [OK] Stripe secret key configured")

    # 2. Stripe webhook signing secret
    if settings.STRIPE_WEBHOOK_SECRET == "whsec_placeholder":
        stripe_errors.append(
            "STRIPE_WEBHOOK_SECRET is placeholder - payment webhooks cannot be verified"
        )
        results["stripe_webhook_secret"] = False
    else:
        results["stripe_webhook_secret"] = True
        logger.info("  [OK] Stripe webhook secret configured")

    for error in stripe_errors:
        if require_stripe:
            critical_failures.append(error)
        else:
            logger.warning(f"  [WARN] {error} (not required in this environment)")

    # 3. Database connectivity
    if engine is not None:
        results["database_connection"] = await validate_database_connection(engine)
        if not results["database_connection"]:
            critical_failures.append("Database connection failed")

    # =========================================================================
    # TIER 2: IMPORTANT (warn but allow startup)
    # =========================================================================

    # 4. Database URL format validation
    if not settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
        logger.warning(
            "DATABASE_URL should use asyncpg driver: postgresql+asyncpg://..."
        )
        results["database_url_format"] = False
    else:
        results["database_url_format"] = True

    # 5. Currency code shape
    if len(settings.PAYMENT_CURRENCY) != 3:
        logger.warning(f"PAYMENT_CURRENCY '{settings.PAYMENT_CURRENCY}' is not an ISO 4217 code")
        results["payment_currency"] = False
    else:
        results["payment_currency"] = True

    # =========================================================================
    # Summary and result
    # =========================================================================

    passed = sum(1 for v in results.values() if v)
    total = len(results)
    logger.info(f"Startup validation: {passed}/{total} checks passed")

    if critical_failures:
        logger.critical("=" * 60)
        logger.critical("STARTUP BLOCKED - Critical configuration errors:")
        for i, failure in enumerate(critical_failures, 1):
            logger.critical(f"  {i}. {failure}")
        logger.critical("=" * 60)
        raise StartupValidationError(
            f"Critical startup validation failed ({len(critical_failures)} errors): "
            f"{'; '.join(critical_failures)}"
        )

    return results


async def validate_database_connection(engine: AsyncEngine) -> bool:
    """
    Validate database connection is working.

    Returns:
        True if database connection successful, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("  [OK] Database connection successful")
        return True

    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
