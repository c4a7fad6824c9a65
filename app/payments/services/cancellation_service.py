"""
Cancellation settlement: apply the operator's policy to a cancelled reservation.

Settling a cancellation computes the fee from the operator's policy and
the notice given, moves money according to where the hold is in its
lifecycle and only then records the reservation as cancelled:

    Hold state          Money movement                 Hold after
    ------------------  -----------------------------  -------------------------
    REQUIRES_CAPTURE    cancel the authorization       CANCELED
    SUCCEEDED, refund>0 partial refund of refund_amt   REFUNDED
    SUCCEEDED, refund=0 none                           CANCELLATION_FEE_CHARGED
    no hold             none                           -

The reservation and its hold are read under the reservation's hold lock,
so a capture that lands while the fee is being computed sends the
settlement down the refund path, and a hold authorized in the same window
is cancelled rather than left live on a cancelled reservation. Only
CONFIRMED reservations can be settled.

Usage:
    from payments.services import CancellationSettlement

    result = CancellationSettlement().settle(reservation_id, "advance_cancellation")
    if result.success:
        outcome = result.data  # SettlementOutcome
    else:
        result.error_code  # "POLICY_MISSING", "STRIPE_CARD_DECLINED", ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    GatewayAccountMissingError,
    ReservationNotCancellableError,
    ReservationNotFoundError,
    StoreWriteFailedError,
)
from payments.locks import hold_lock
from payments.models import ConnectedAccount, PaymentHold, PaymentProfile
from payments.policies import PolicyResolver, compute_fee, days_until
from payments.services.hold_transitions import transition_hold
from payments.state_machines import HoldStatus, PaymentProfileStatus
from payments.types import SettlementOutcome
from reservations.models import Reservation, ReservationStatus

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from payments.adapters import PaymentGateway
    from payments.policies import FeeBreakdown

logger = logging.getLogger(__name__)

ACTION_AUTHORIZATION_CANCELED = "authorization_canceled"
ACTION_REFUNDED = "refunded"
ACTION_FEE_RETAINED = "fee_retained"
ACTION_ALREADY_SETTLED = "already_settled"
ACTION_NO_HOLD = "no_hold"


class CancellationSettlement(BaseService):
    """
    Settles the payment side of a reservation cancellation.

    Args:
        gateway: PaymentGateway implementation (defaults to StripeAdapter)
        policy_resolver: Source of the operator's cancellation policy
    """

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        policy_resolver: PolicyResolver | None = None,
    ) -> None:
        self.gateway = gateway or StripeAdapter()
        self.policy_resolver = policy_resolver or PolicyResolver()

    def settle(
        self,
        reservation_id: Any,
        cancellation_type: str,
        now: datetime | None = None,
    ) -> ServiceResult[SettlementOutcome]:
        """
        Settle a cancellation.

        The reservation status is written last, and only when every money
        movement the hold needed has succeeded. On failure nothing about
        the reservation changes and the call can be retried.

        Args:
            reservation_id: Reservation being cancelled
            cancellation_type: "same_day_cancellation" or "advance_cancellation"
            now: Cancellation time (defaults to the current time)

        Returns:
            ServiceResult with a SettlementOutcome, or a failure carrying
            the error code of the step that failed
        """
        now = now or timezone.now()
        try:
            outcome = self._settle(reservation_id, cancellation_type, now)
        except BaseApplicationError as e:
            return self.handle_exception(e, "Cancellation settlement", log_level=logging.WARNING)

        logger.info(
            "Cancellation settled",
            extra={
                "reservation_id": outcome.reservation_id,
                "action": outcome.action,
                "days_until_reservation": outcome.days_until_reservation,
                "fee_percentage": outcome.fee_percentage,
                "cancellation_fee": outcome.cancellation_fee,
                "refund_amount": outcome.refund_amount,
            },
        )
        return ServiceResult.ok(outcome)

    def _settle(self, reservation_id: Any, cancellation_type: str, now: datetime) -> SettlementOutcome:
        reservation = Reservation.objects.filter(pk=reservation_id).first()
        if reservation is None:
            raise ReservationNotFoundError(
                f"Reservation {reservation_id} not found",
                details={"reservation_id": str(reservation_id)},
            )

        policy = self.policy_resolver.resolve(reservation.operator_id)
        days = days_until(reservation.start_time, now)
        breakdown = compute_fee(reservation.total_price, policy.fee_percentage_for(days))

        with hold_lock(reservation.id):
            # The authorization scheduler may have inserted a hold since the fee was computed
            reservation = Reservation.objects.get(pk=reservation.id)
            if reservation.status != ReservationStatus.CONFIRMED:
                raise ReservationNotCancellableError(
                    f"Reservation is {reservation.status} and cannot be cancelled",
                    details={"reservation_id": str(reservation.id), "status": reservation.status},
                )

            hold = PaymentHold.objects.filter(reservation_id=reservation.id).first()
            if hold is None:
                action, hold_status = ACTION_NO_HOLD, None
            else:
                account = self._account_for(reservation)
                hold, action = self._settle_hold(hold.pk, account, breakdown)
                hold_status = hold.status

            try:
                with transaction.atomic():
                    reservation.mark_cancelled(cancellation_type)
                    self._cancel_pending_profile(reservation.id)
            except DatabaseError as e:
                raise self._store_write_failed(
                    "Settlement finished but the reservation was not marked cancelled",
                    e,
                    reservation_id=str(reservation.id),
                    hold_id=str(hold.pk) if hold is not None else None,
                    action=action,
                ) from e

        return SettlementOutcome(
            reservation_id=str(reservation.id),
            reservation_status=reservation.status,
            days_until_reservation=days,
            fee_percentage=breakdown.fee_percentage,
            cancellation_fee=breakdown.cancellation_fee,
            refund_amount=breakdown.refund_amount,
            action=action,
            hold_id=str(hold.pk) if hold is not None else None,
            hold_status=hold_status,
        )

    def _account_for(self, reservation: Reservation) -> ConnectedAccount:
        account = ConnectedAccount.objects.for_operator(reservation.operator_id)
        if account is None:
            raise GatewayAccountMissingError(
                f"Operator {reservation.operator_id} has no connected account able to charge",
                details={
                    "operator_id": str(reservation.operator_id),
                    "reservation_id": str(reservation.id),
                },
            )
        return account

    def _settle_hold(
        self,
        hold_id: Any,
        account: ConnectedAccount,
        breakdown: FeeBreakdown,
    ) -> tuple[PaymentHold, str]:
        """Move money for the hold's current state. Caller holds the lock."""
        hold = PaymentHold.objects.get(pk=hold_id)

        if hold.status == HoldStatus.REQUIRES_CAPTURE:
            self.gateway.cancel_payment_intent(
                hold.stripe_payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("cancel", hold.pk),
                stripe_account=account.stripe_account_id,
            )
            try:
                hold = transition_hold(
                    hold.pk,
                    HoldStatus.REQUIRES_CAPTURE,
                    "cancel",
                    uncollected_fee=breakdown.cancellation_fee,
                )
            except DatabaseError as e:
                raise self._store_write_failed(
                    "Authorization cancelled at Stripe but the hold was not updated",
                    e,
                    hold_id=str(hold.pk),
                    payment_intent_id=hold.stripe_payment_intent_id,
                ) from e
            return hold, ACTION_AUTHORIZATION_CANCELED

        if hold.status == HoldStatus.SUCCEEDED and breakdown.refund_amount > 0:
            refund = self.gateway.create_refund(
                hold.stripe_payment_intent_id,
                idempotency_key=IdempotencyKeyGenerator.generate("refund", hold.pk),
                stripe_account=account.stripe_account_id,
                amount=breakdown.refund_amount,
            )
            try:
                hold = transition_hold(
                    hold.pk,
                    HoldStatus.SUCCEEDED,
                    "refund",
                    cancellation_fee=breakdown.cancellation_fee,
                    refund_amount=breakdown.refund_amount,
                    stripe_refund_id=refund.id,
                )
            except DatabaseError as e:
                raise self._store_write_failed(
                    "Refund issued at Stripe but the hold was not updated",
                    e,
                    hold_id=str(hold.pk),
                    payment_intent_id=hold.stripe_payment_intent_id,
                    refund_id=refund.id,
                ) from e
            return hold, ACTION_REFUNDED

        if hold.status == HoldStatus.SUCCEEDED:
            hold = transition_hold(
                hold.pk,
                HoldStatus.SUCCEEDED,
                "retain_fee",
                cancellation_fee=breakdown.cancellation_fee,
            )
            return hold, ACTION_FEE_RETAINED

        logger.info(
            "Hold already settled, no money movement",
            extra={"hold_id": str(hold.pk), "status": hold.status},
        )
        return hold, ACTION_ALREADY_SETTLED

    def _store_write_failed(self, message: str, error: DatabaseError, **details: Any) -> StoreWriteFailedError:
        logger.critical(message, extra={**details, "error": str(error)})
        return StoreWriteFailedError(message, details=details)

    def _cancel_pending_profile(self, reservation_id: Any) -> None:
        profile = (
            PaymentProfile.objects.select_for_update()
            .filter(
                reservation_id=reservation_id,
                status__in=[PaymentProfileStatus.REQUEST, PaymentProfileStatus.REQUIRES_CAPTURE],
            )
            .first()
        )
        if profile is None:
            return
        profile.cancel()
        profile.save(update_fields=["status", "updated_at"])
