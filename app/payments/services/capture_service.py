"""
Capture scheduler: collect authorized holds on their capture date.

For each hold in REQUIRES_CAPTURE whose capture_date has passed, the
scheduler takes the reservation's hold lock and re-reads the hold. Holds
whose reservation is no longer CONFIRMED are skipped; the rest are
captured in full on the operator's connected account and recorded
through transition_hold.

The capture idempotency key is derived from the hold id only, so two
overlapping runs (or a run retried after a timeout) capture at most once
at Stripe; the second writer then finds the hold already SUCCEEDED and
skips it.

Usage:
    from payments.services import CaptureScheduler

    summary = CaptureScheduler().run()

    # On demand, e.g. from the operator API
    result = CaptureScheduler().capture_hold(hold_id)
    if result.success:
        hold = result.data
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import BaseApplicationError, NotFoundError
from core.services import BaseService, ServiceResult

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    GatewayAccountMissingError,
    InvalidStateTransitionError,
    StoreWriteFailedError,
)
from payments.locks import hold_lock
from payments.models import ConnectedAccount, PaymentHold
from payments.services.hold_transitions import transition_hold
from payments.state_machines import HoldStatus
from payments.types import BatchSummary
from reservations.models import Reservation, ReservationStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from payments.adapters import PaymentGateway

logger = logging.getLogger(__name__)

CAPTURED = "captured"
SKIPPED = "skipped"


class CaptureScheduler(BaseService):
    """
    Captures holds whose capture_date has arrived.

    Args:
        gateway: PaymentGateway implementation (defaults to StripeAdapter)
    """

    def __init__(self, gateway: PaymentGateway | None = None) -> None:
        self.gateway = gateway or StripeAdapter()

    def run(self, now: datetime | None = None) -> BatchSummary:
        """
        Capture every due hold.

        Lock contention and gateway errors are per-hold failures; the rest
        of the batch still runs and the hold is picked up again next tick.
        """
        now = now or timezone.now()
        summary = BatchSummary()

        due = PaymentHold.objects.due_for_capture(now).order_by("capture_date")
        for hold in due[: settings.PAYMENT_BATCH_SIZE]:
            summary.considered += 1
            try:
                outcome = self._capture(hold.pk, blocking=False)
            except BaseApplicationError as e:
                summary.record_failure(hold.pk, e)
                logger.error(
                    "Capture failed",
                    extra={
                        "hold_id": str(hold.pk),
                        "reservation_id": str(hold.reservation_id),
                        "error_code": e.error_code,
                        "error": e.message,
                        "is_retryable": getattr(e, "is_retryable", False),
                    },
                )
                continue
            except Exception as e:
                summary.record_failure(hold.pk, e)
                logger.exception(
                    "Unexpected error during capture",
                    extra={"hold_id": str(hold.pk)},
                )
                continue

            if outcome == CAPTURED:
                summary.succeeded += 1
            else:
                summary.skipped += 1

        logger.info(
            "Capture run complete",
            extra={
                "considered": summary.considered,
                "succeeded": summary.succeeded,
                "skipped": summary.skipped,
                "failed": summary.failed,
            },
        )
        return summary

    def capture_hold(self, hold_id: Any) -> ServiceResult[PaymentHold]:
        """
        Capture a single hold now, regardless of its capture_date.

        Returns:
            ServiceResult with the updated hold, or a failure if the hold
            is not capturable or Stripe refused the capture
        """
        try:
            outcome = self._capture(hold_id, blocking=True)
        except BaseApplicationError as e:
            return self.handle_exception(e, "Manual capture", log_level=logging.WARNING)

        hold = PaymentHold.objects.get(pk=hold_id)
        if outcome != CAPTURED:
            return ServiceResult.failure(
                f"Hold is {hold.status} and cannot be captured",
                error_code="HOLD_NOT_CAPTURABLE",
                exception=InvalidStateTransitionError(
                    f"Hold is {hold.status} and cannot be captured",
                    details={"hold_id": str(hold_id), "current_state": hold.status},
                ),
            )
        return ServiceResult.ok(hold)

    def _capture(self, hold_id: Any, blocking: bool) -> str:
        hold = PaymentHold.objects.filter(pk=hold_id).first()
        if hold is None:
            raise NotFoundError(
                f"PaymentHold {hold_id} not found",
                error_code="HOLD_NOT_FOUND",
                details={"hold_id": str(hold_id)},
            )

        with hold_lock(hold.reservation_id, blocking=blocking):
            # Settlement may have moved the hold since it was selected
            hold = PaymentHold.objects.get(pk=hold_id)
            if hold.status != HoldStatus.REQUIRES_CAPTURE:
                logger.info(
                    "Hold no longer awaiting capture",
                    extra={"hold_id": str(hold.pk), "status": hold.status},
                )
                return SKIPPED

            reservation_status = (
                Reservation.objects.filter(pk=hold.reservation_id).values_list("status", flat=True).first()
            )
            if reservation_status != ReservationStatus.CONFIRMED:
                logger.warning(
                    "Hold belongs to a reservation that is no longer confirmed, not capturing",
                    extra={"hold_id": str(hold.pk), "reservation_status": reservation_status},
                )
                return SKIPPED

            account = ConnectedAccount.objects.for_operator(hold.operator_id)
            if account is None:
                raise GatewayAccountMissingError(
                    f"Operator {hold.operator_id} has no connected account able to charge",
                    details={"operator_id": str(hold.operator_id), "hold_id": str(hold.pk)},
                )

            intent = self.gateway.capture_payment_intent(
                hold.stripe_payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("capture", hold.pk),
                stripe_account=account.stripe_account_id,
            )

            if intent.status != HoldStatus.SUCCEEDED:
                logger.warning(
                    "Capture did not complete, will retry",
                    extra={
                        "hold_id": str(hold.pk),
                        "payment_intent_id": hold.stripe_payment_intent_id,
                        "gateway_status": intent.status,
                    },
                )
                return SKIPPED

            try:
                transition_hold(hold.pk, HoldStatus.REQUIRES_CAPTURE, "capture")
            except DatabaseError as e:
                logger.critical(
                    "Capture succeeded at Stripe but the hold was not updated",
                    extra={
                        "hold_id": str(hold.pk),
                        "payment_intent_id": hold.stripe_payment_intent_id,
                        "error": str(e),
                    },
                )
                raise StoreWriteFailedError(
                    "Capture succeeded but the hold could not be updated",
                    details={
                        "hold_id": str(hold.pk),
                        "payment_intent_id": hold.stripe_payment_intent_id,
                    },
                ) from e

        logger.info(
            "Hold captured",
            extra={
                "hold_id": str(hold.pk),
                "reservation_id": str(hold.reservation_id),
                "payment_intent_id": hold.stripe_payment_intent_id,
                "amount": intent.amount_received or hold.amount,
            },
        )
        return CAPTURED
