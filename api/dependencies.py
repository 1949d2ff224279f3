"""
FastAPI dependencies.

Components are built once in the application lifespan and stored on
``app.state``; these dependencies hand them to the routes. Tests replace them
through ``app.dependency_overrides``.
"""

from collections.abc import AsyncIterator
from datetime import tzinfo
from uuid import UUID

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from booking.services.reconciliation_service import NotificationReconciler
from booking.transactions.reservation_transaction import ReservationTransaction
from database.reservation_store import ReservationStore
from shared.errors import MissingGuestIdentity


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Read-only session for catalog and quote routes."""
    async with request.app.state.session_factory() as session:
        yield session


def get_store(request: Request) -> ReservationStore:
    return request.app.state.store


def get_default_tz(request: Request) -> tzinfo:
    """Zone applied to timestamps sent without an offset."""
    return request.app.state.default_tz


def get_reservation_transaction(request: Request) -> ReservationTransaction:
    return request.app.state.reservation_transaction


def get_reconciler(request: Request) -> NotificationReconciler:
    return request.app.state.reconciler


def get_guest_id(x_guest_id: str | None = Header(default=None, alias="X-Guest-Id")) -> UUID:
    """
    Identity of the caller placing a booking.

    Raises:
        MissingGuestIdentity: Header missing or not a UUID (401)
    """
    if not x_guest_id:
        raise MissingGuestIdentity()
    try:
        return UUID(x_guest_id)
    except ValueError as e:
        raise MissingGuestIdentity() from e
