"""
Atomic transaction handlers.

Transaction handlers encapsulate multi-step operations that must execute
atomically (all succeed or all roll back). They coordinate between:
- PostgreSQL database (via SQLAlchemy async sessions)
- Stripe API (PaymentIntent creation / cancellation)

Transaction handlers:
- ReservationTransaction: Reserve a room interval and link its PaymentIntent
"""

from booking.transactions.reservation_transaction import (
    ReservationResult,
    ReservationState,
    ReservationTransaction,
)

__all__ = ["ReservationResult", "ReservationState", "ReservationTransaction"]
