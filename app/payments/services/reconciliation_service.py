"""
Reconciliation for holds stuck in REQUIRES_CAPTURE.

A capture or cancel call that timed out, or whose status write failed
after Stripe accepted it, leaves the local hold in REQUIRES_CAPTURE while
the PaymentIntent has already moved on. This service finds holds that
have been due for longer than HOLD_RECONCILIATION_GRACE_MINUTES, reads
their PaymentIntent and heals the local status:

    Stripe status      Local heal
    -----------------  ------------------------------
    succeeded          capture  (-> SUCCEEDED)
    canceled           cancel   (-> CANCELED)
    anything else      none, left to the capture scheduler

Usage:
    from payments.services import HoldReconciler

    summary = HoldReconciler().run()
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService

from payments.adapters import StripeAdapter
from payments.exceptions import GatewayAccountMissingError
from payments.locks import hold_lock
from payments.models import ConnectedAccount, PaymentHold
from payments.services.hold_transitions import transition_hold
from payments.state_machines import HoldStatus
from payments.types import BatchSummary

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from payments.adapters import PaymentGateway

logger = logging.getLogger(__name__)

# Stripe PaymentIntent status -> hold transition that brings us in line
HEALING_TRANSITIONS = {
    HoldStatus.SUCCEEDED: "capture",
    HoldStatus.CANCELED: "cancel",
}


class HoldReconciler(BaseService):
    """
    Heals holds whose local status fell behind Stripe.

    Args:
        gateway: PaymentGateway implementation (defaults to StripeAdapter)
    """

    def __init__(self, gateway: PaymentGateway | None = None) -> None:
        self.gateway = gateway or StripeAdapter()

    def stale_holds(self, now: datetime):
        cutoff = now - timedelta(minutes=settings.HOLD_RECONCILIATION_GRACE_MINUTES)
        return PaymentHold.objects.filter(
            status=HoldStatus.REQUIRES_CAPTURE,
            capture_date__lte=cutoff,
        ).order_by("capture_date")[: settings.PAYMENT_BATCH_SIZE]

    def run(self, now: datetime | None = None) -> BatchSummary:
        now = now or timezone.now()
        summary = BatchSummary()

        for hold in self.stale_holds(now):
            summary.considered += 1
            try:
                healed = self.reconcile_hold(hold.pk)
            except BaseApplicationError as e:
                summary.record_failure(hold.pk, e)
                logger.error(
                    "Hold reconciliation failed",
                    extra={
                        "hold_id": str(hold.pk),
                        "error_code": e.error_code,
                        "error": e.message,
                    },
                )
                continue
            except Exception as e:
                summary.record_failure(hold.pk, e)
                logger.exception(
                    "Unexpected error during hold reconciliation",
                    extra={"hold_id": str(hold.pk)},
                )
                continue

            if healed:
                summary.succeeded += 1
            else:
                summary.skipped += 1

        logger.info(
            "Hold reconciliation complete",
            extra={
                "considered": summary.considered,
                "healed": summary.succeeded,
                "skipped": summary.skipped,
                "failed": summary.failed,
            },
        )
        return summary

    def reconcile_hold(self, hold_id: Any) -> bool:
        """
        Compare one hold against its PaymentIntent and heal it.

        Returns:
            True if the local status was changed
        """
        hold = PaymentHold.objects.get(pk=hold_id)

        with hold_lock(hold.reservation_id, blocking=False):
            hold = PaymentHold.objects.get(pk=hold_id)
            if hold.status != HoldStatus.REQUIRES_CAPTURE:
                return False

            account = ConnectedAccount.objects.filter(operator_id=hold.operator_id).first()
            if account is None:
                raise GatewayAccountMissingError(
                    f"Operator {hold.operator_id} has no connected account",
                    details={"operator_id": str(hold.operator_id), "hold_id": str(hold.pk)},
                )

            intent = self.gateway.retrieve_payment_intent(
                hold.stripe_payment_intent_id,
                stripe_account=account.stripe_account_id,
            )

            transition = HEALING_TRANSITIONS.get(intent.status)
            if transition is None:
                logger.warning(
                    "Hold still awaiting capture at Stripe",
                    extra={
                        "hold_id": str(hold.pk),
                        "payment_intent_id": hold.stripe_payment_intent_id,
                        "gateway_status": intent.status,
                        "capture_date": hold.capture_date.isoformat(),
                    },
                )
                return False

            transition_hold(hold.pk, HoldStatus.REQUIRES_CAPTURE, transition)

        logger.warning(
            "Hold healed from Stripe state",
            extra={
                "hold_id": str(hold.pk),
                "payment_intent_id": hold.stripe_payment_intent_id,
                "gateway_status": intent.status,
                "transition": transition,
            },
        )
        return True
