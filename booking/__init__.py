"""
Booking domain: pricing, room catalog, reservation transaction and payment
notification reconciliation.
"""
