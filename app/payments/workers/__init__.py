"""
Workers for async payment processing.

This module contains Celery tasks for the deferred-payment lifecycle:
- AuthorizationWorker: Places holds for reservations entering the window
- CaptureWorker: Captures holds on their capture date
- ReconciliationWorker: Heals holds that fell behind Stripe

Usage:
    from payments.workers import (
        authorize_pending_reservations,
        capture_due_holds,
        reconcile_stale_holds,
    )

    # Trigger manual processing
    capture_due_holds.delay()
"""

from payments.workers.authorization_worker import authorize_pending_reservations
from payments.workers.capture_worker import capture_due_holds
from payments.workers.reconciliation_worker import reconcile_stale_holds

__all__ = [
    # Authorization Worker
    "authorize_pending_reservations",
    # Capture Worker
    "capture_due_holds",
    # Reconciliation Worker
    "reconcile_stale_holds",
]
