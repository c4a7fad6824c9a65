"""
Reconciliation worker for holds that fell behind Stripe.

Tasks:
- reconcile_stale_holds: Periodic task (every 15 minutes via celery-beat)
  that heals holds still in REQUIRES_CAPTURE well past their capture date

Usage:
    from payments.workers import reconcile_stale_holds

    reconcile_stale_holds.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def reconcile_stale_holds(self) -> dict:
    """
    Heal holds whose capture or cancel outcome was never recorded.

    Holds are considered stale once they have been due for longer than
    HOLD_RECONCILIATION_GRACE_MINUTES. Holds that are locked by another
    actor are reported as failures and retried on the next run.

    Returns:
        BatchSummary as a dict (succeeded counts healed holds)
    """
    from payments.services import HoldReconciler

    logger.info("Starting hold reconciliation run", extra={"task_id": self.request.id})
    summary = HoldReconciler().run()
    return summary.to_dict()
