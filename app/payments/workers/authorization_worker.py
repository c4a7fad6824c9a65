"""
Authorization worker: places holds for reservations entering the window.

Tasks:
- authorize_pending_reservations: Periodic task (every minute via
  celery-beat) that runs the AuthorizationScheduler

Usage:
    from payments.workers import authorize_pending_reservations

    authorize_pending_reservations.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def authorize_pending_reservations(self) -> dict:
    """
    Authorize every pending PaymentProfile whose reservation is in window.

    Per-reservation failures are recorded in the summary, not raised, so a
    single declined card never fails the task. The next tick picks up
    whatever is still pending.

    Returns:
        BatchSummary as a dict (considered, succeeded, skipped, failed,
        failures)
    """
    from payments.services import AuthorizationScheduler

    logger.info("Starting authorization run", extra={"task_id": self.request.id})
    summary = AuthorizationScheduler().run()
    return summary.to_dict()
