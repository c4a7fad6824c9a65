"""
Payment services for the deferred-payment lifecycle.

This module provides:
- AuthorizationScheduler: Places holds on cards ahead of appointments
- CaptureScheduler: Captures holds on their capture date
- CancellationSettlement: Applies the cancellation policy to a hold
- HoldReconciler: Heals holds whose status fell behind Stripe
- transition_hold: The single write path for hold status changes

Usage:
    from payments.services import CancellationSettlement

    result = CancellationSettlement().settle(
        reservation_id,
        cancellation_type="advance_cancellation",
    )

    if result.success:
        outcome = result.data
        print(f"Refunded {outcome.refund_amount}, kept {outcome.cancellation_fee}")
    else:
        print(f"Error: {result.error} ({result.error_code})")
"""

from payments.services.authorization_service import AuthorizationScheduler
from payments.services.cancellation_service import CancellationSettlement
from payments.services.capture_service import CaptureScheduler
from payments.services.hold_transitions import transition_hold
from payments.services.reconciliation_service import HoldReconciler

__all__ = [
    "AuthorizationScheduler",
    "CancellationSettlement",
    "CaptureScheduler",
    "HoldReconciler",
    "transition_hold",
]
