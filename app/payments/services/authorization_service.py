"""
Authorization scheduler: place card holds ahead of appointments.

Each run looks for PaymentProfiles still in REQUEST whose reservation is
confirmed and starts within AUTHORIZATION_WINDOW_DAYS, and for each one:

1. Takes the reservation's hold lock (non-blocking) and re-reads the
   profile and reservation
2. Creates a manual-capture PaymentIntent on the operator's connected
   account for the full price
3. In one transaction, inserts the PaymentHold (with its capture_date
   fixed from the current policy) and moves the profile to
   REQUIRES_CAPTURE

A failed candidate is logged and recorded; the rest of the batch still
runs. If an earlier run inserted the hold but never flipped the profile,
only the profile is flipped.

Usage:
    from payments.services import AuthorizationScheduler

    summary = AuthorizationScheduler().run()
    summary.to_dict()
    # {"considered": 3, "succeeded": 2, "skipped": 0, "failures": [...], "failed": 1}
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService

from payments.adapters import CreateAuthorizationParams, IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    GatewayAccountMissingError,
    PaymentProcessingError,
    StoreWriteFailedError,
)
from payments.locks import hold_lock
from payments.models import ConnectedAccount, PaymentHold, PaymentProfile
from payments.policies import PolicyResolver
from payments.state_machines import HoldStatus, PaymentProfileStatus
from payments.types import BatchSummary
from reservations.models import ReservationStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from payments.adapters import PaymentGateway, PaymentIntentResult
    from reservations.models import Reservation

logger = logging.getLogger(__name__)

AUTHORIZED = "authorized"
PROFILE_SYNCED = "profile_synced"
SKIPPED = "skipped"


class AuthorizationScheduler(BaseService):
    """
    Creates authorization holds for reservations entering the window.

    Args:
        gateway: PaymentGateway implementation (defaults to StripeAdapter)
        policy_resolver: Used to fix each new hold's capture_date
    """

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        policy_resolver: PolicyResolver | None = None,
    ) -> None:
        self.gateway = gateway or StripeAdapter()
        self.policy_resolver = policy_resolver or PolicyResolver()

    # =========================================================================
    # Batch
    # =========================================================================

    def candidates(self, now: datetime):
        window_end = now + timedelta(days=settings.AUTHORIZATION_WINDOW_DAYS)
        return (
            PaymentProfile.objects.filter(
                status=PaymentProfileStatus.REQUEST,
                reservation__status=ReservationStatus.CONFIRMED,
                reservation__start_time__gt=now,
                reservation__start_time__lte=window_end,
            )
            .select_related("reservation")
            .order_by("reservation__start_time")[: settings.PAYMENT_BATCH_SIZE]
        )

    def run(self, now: datetime | None = None) -> BatchSummary:
        """
        Authorize every eligible pending profile.

        Returns:
            BatchSummary of the run
        """
        now = now or timezone.now()
        summary = BatchSummary()

        for profile in self.candidates(now):
            summary.considered += 1
            try:
                outcome = self.authorize_profile(profile.pk, now)
            except BaseApplicationError as e:
                summary.record_failure(profile.reservation_id, e)
                logger.error(
                    "Authorization failed",
                    extra={
                        "reservation_id": str(profile.reservation_id),
                        "error_code": e.error_code,
                        "error": e.message,
                        "is_retryable": getattr(e, "is_retryable", False),
                    },
                )
                continue
            except Exception as e:
                summary.record_failure(profile.reservation_id, e)
                logger.exception(
                    "Unexpected error during authorization",
                    extra={"reservation_id": str(profile.reservation_id)},
                )
                continue

            if outcome == SKIPPED:
                summary.skipped += 1
            else:
                summary.succeeded += 1

        logger.info(
            "Authorization run complete",
            extra={
                "considered": summary.considered,
                "succeeded": summary.succeeded,
                "skipped": summary.skipped,
                "failed": summary.failed,
            },
        )
        return summary

    # =========================================================================
    # Single candidate
    # =========================================================================

    def authorize_profile(self, profile_id: Any, now: datetime) -> str:
        """
        Authorize one profile.

        Returns:
            AUTHORIZED, PROFILE_SYNCED or SKIPPED

        Raises:
            LockAcquisitionError: Another actor is working on the reservation
            GatewayAccountMissingError: Operator cannot take charges
            StripeError: Authorization was declined or Stripe failed
            StoreWriteFailedError: Stripe succeeded but the hold was not saved
        """
        profile = PaymentProfile.objects.select_related("reservation").get(pk=profile_id)
        reservation = profile.reservation

        with hold_lock(reservation.id, blocking=False):
            # Guard reload: another run or a settlement may have got here first
            profile = PaymentProfile.objects.select_related("reservation").get(pk=profile_id)
            reservation = profile.reservation
            if profile.status != PaymentProfileStatus.REQUEST or not self._is_eligible(
                reservation, now
            ):
                logger.info(
                    "Authorization candidate no longer eligible",
                    extra={
                        "reservation_id": str(reservation.id),
                        "profile_status": profile.status,
                        "reservation_status": reservation.status,
                    },
                )
                return SKIPPED

            if PaymentHold.objects.filter(reservation_id=reservation.id).exists():
                self._mark_profile_authorized(profile.pk)
                logger.warning(
                    "Hold already existed, profile status synced",
                    extra={"reservation_id": str(reservation.id)},
                )
                return PROFILE_SYNCED

            account = ConnectedAccount.objects.for_operator(reservation.operator_id)
            if account is None:
                raise GatewayAccountMissingError(
                    f"Operator {reservation.operator_id} has no connected account able to charge",
                    details={
                        "operator_id": str(reservation.operator_id),
                        "reservation_id": str(reservation.id),
                    },
                )

            capture_date = self.policy_resolver.capture_date_for(
                reservation.operator_id,
                reservation.start_time,
            )

            intent = self.gateway.create_authorization(
                CreateAuthorizationParams(
                    amount=reservation.total_price,
                    currency=settings.PAYMENT_CURRENCY,
                    customer_id=profile.stripe_customer_id,
                    payment_method_id=profile.stripe_payment_method_id,
                    stripe_account=account.stripe_account_id,
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        "authorize",
                        f"{reservation.id}:{profile.stripe_payment_method_id}",
                    ),
                    receipt_email=profile.customer_email or None,
                    metadata={"reservation_id": str(reservation.id)},
                )
            )

            if intent.status != HoldStatus.REQUIRES_CAPTURE:
                raise PaymentProcessingError(
                    f"Authorization ended in status {intent.status}",
                    error_code="AUTHORIZATION_INCOMPLETE",
                    details={
                        "reservation_id": str(reservation.id),
                        "payment_intent_id": intent.id,
                        "status": intent.status,
                    },
                )

            self._record_hold(profile.pk, reservation, intent, capture_date)

        logger.info(
            "Reservation authorized",
            extra={
                "reservation_id": str(reservation.id),
                "payment_intent_id": intent.id,
                "amount": reservation.total_price,
                "capture_date": capture_date.isoformat(),
            },
        )
        return AUTHORIZED

    def _is_eligible(self, reservation: Reservation, now: datetime) -> bool:
        window_end = now + timedelta(days=settings.AUTHORIZATION_WINDOW_DAYS)
        return (
            reservation.status == ReservationStatus.CONFIRMED
            and now < reservation.start_time <= window_end
        )

    def _mark_profile_authorized(self, profile_id: Any) -> None:
        with transaction.atomic():
            profile = PaymentProfile.objects.select_for_update().get(pk=profile_id)
            profile.mark_authorized()
            profile.save(update_fields=["status", "updated_at"])

    def _record_hold(
        self,
        profile_id: Any,
        reservation: Reservation,
        intent: PaymentIntentResult,
        capture_date: datetime,
    ) -> None:
        """Insert the hold and flip the profile atomically."""
        try:
            with transaction.atomic():
                PaymentHold.objects.create(
                    reservation=reservation,
                    operator_id=reservation.operator_id,
                    stripe_payment_intent_id=intent.id,
                    amount=intent.amount,
                    currency=intent.currency,
                    capture_date=capture_date,
                )
                self._mark_profile_authorized(profile_id)
        except DatabaseError as e:
            logger.critical(
                "Authorization succeeded at Stripe but the hold was not saved",
                extra={
                    "reservation_id": str(reservation.id),
                    "payment_intent_id": intent.id,
                    "error": str(e),
                },
            )
            raise StoreWriteFailedError(
                "Authorization created but the hold could not be saved",
                details={
                    "reservation_id": str(reservation.id),
                    "payment_intent_id": intent.id,
                },
            ) from e
