"""
Booking services module.

Services:
- pricing_service: Pure price quote for a room interval
- catalog_service: Read-only room listing and detail queries
- reconciliation_service: Applies Stripe webhook events to booking status
"""

from booking.services.pricing_service import billable_hours, parse_interval, quote, quote_room
from booking.services.reconciliation_service import NotificationReconciler, ReconcileOutcome

__all__ = [
    "billable_hours",
    "parse_interval",
    "quote",
    "quote_room",
    "NotificationReconciler",
    "ReconcileOutcome",
]
