"""
Payments app for deferred reservation payments on Stripe Connect.

This app handles:
- Card authorization (manual-capture PaymentIntents) ahead of appointments
- Capture on the capture date derived from the operator's policy
- Cancellation fee settlement (cancel, partial refund or fee retention)
- Reconciliation of holds that fell behind Stripe

Related apps:
    - reservations: The bookings being paid for

Usage:
    from payments.services import CancellationSettlement

    result = CancellationSettlement().settle(reservation_id, "advance_cancellation")
"""
