"""
Celery tasks for payment processing.

The tasks are defined in payments.workers and re-exported here so Celery
autodiscover finds them.

Periodic (celery-beat, seeded by migration 0002):
    authorize_pending_reservations  - every minute
    capture_due_holds               - every minute
    reconcile_stale_holds           - every 15 minutes
"""

from payments.workers import (  # noqa: F401
    authorize_pending_reservations,
    capture_due_holds,
    reconcile_stale_holds,
)
