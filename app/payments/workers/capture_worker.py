"""
Capture worker: collects holds whose capture date has arrived.

Tasks:
- capture_due_holds: Periodic task (every minute via celery-beat)

Usage:
    from payments.workers import capture_due_holds

    capture_due_holds.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def capture_due_holds(self) -> dict:
    """
    Capture every hold in REQUIRES_CAPTURE with capture_date <= now.

    Overlapping runs are safe: each hold is captured under its
    reservation lock with an idempotency key derived from the hold id.

    Returns:
        BatchSummary as a dict
    """
    from payments.services import CaptureScheduler

    logger.info("Starting capture run", extra={"task_id": self.request.id})
    summary = CaptureScheduler().run()
    return summary.to_dict()

