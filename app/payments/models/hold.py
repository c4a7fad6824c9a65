"""
PaymentHold model for deferred capture.

A PaymentHold is the local mirror of one manual-capture Stripe
PaymentIntent: the authorization placed on the customer's card some days
before the appointment, captured on capture_date and reversed (cancel or
partial refund) if the reservation is cancelled.

Usage:
    from payments.models import PaymentHold
    from payments.services.hold_transitions import transition_hold

    hold = PaymentHold.objects.create(
        reservation=reservation,
        operator_id=reservation.operator_id,
        stripe_payment_intent_id="pi_xxx",
        amount=reservation.total_price,
        capture_date=capture_date,
    )

    # State changes go through transition_hold, never hold.save()
    transition_hold(hold.id, HoldStatus.REQUIRES_CAPTURE, "capture")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import HoldStatus


class PaymentHoldQuerySet(models.QuerySet):
    def due_for_capture(self, now):
        return self.filter(
            status=HoldStatus.REQUIRES_CAPTURE,
            capture_date__lte=now,
        )

    def active(self):
        return self.filter(status__in=HoldStatus.active())


class PaymentHold(UUIDPrimaryKeyMixin, BaseModel):
    """
    Authorization hold for a single reservation.

    State Flow:
        REQUIRES_CAPTURE -> SUCCEEDED (capture on capture_date)
        REQUIRES_CAPTURE -> CANCELED (cancelled before capture)
        SUCCEEDED -> REFUNDED (cancelled after capture, refund > 0)
        SUCCEEDED -> CANCELLATION_FEE_CHARGED (cancelled after capture, refund == 0)

    Fields:
        reservation: The reservation this hold pays for (at most one hold each)
        operator: Salon owner whose Connect account the intent lives on
        stripe_payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        amount: Authorized amount in minor currency units
        currency: ISO 4217 currency code (lowercase)
        status: Current FSM state, mirroring the PaymentIntent
        capture_date: When the capture scheduler should capture; fixed at
            creation from the policy in force then
        cancellation_fee / refund_amount: Settlement figures, set when the
            hold is settled by a cancellation
        version: Incremented by every transition write

    Note:
        status is protected. Transitions mutate the in-memory instance;
        payments.services.hold_transitions persists them with a
        compare-and-swap update.
    """

    reservation = models.OneToOneField(
        "reservations.Reservation",
        on_delete=models.PROTECT,
        related_name="payment_hold",
        help_text="Reservation this hold pays for",
    )

    operator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_holds",
        help_text="Operator whose connected account holds the PaymentIntent",
    )

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    amount = models.PositiveBigIntegerField(
        help_text="Authorized amount in minor currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="jpy",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = FSMField(
        default=HoldStatus.REQUIRES_CAPTURE,
        choices=HoldStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the hold (managed by FSM)",
    )

    capture_date = models.DateTimeField(
        db_index=True,
        help_text="When the hold becomes due for capture",
    )

    # ==========================================================================
    # Settlement
    # ==========================================================================

    cancellation_fee = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Fee retained on cancellation (minor units)",
    )

    refund_amount = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Amount returned to the customer on cancellation (minor units)",
    )

    captured_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each transition",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata (e.g., Stripe refund id)",
    )

    objects = PaymentHoldQuerySet.as_manager()

    class Meta:
        ordering = ["capture_date"]
        verbose_name = "Payment Hold"
        verbose_name_plural = "Payment Holds"
        indexes = [
            models.Index(fields=["status", "capture_date"], name="hold_status_capture_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_hold_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentHold({self.id}, {self.status}, {self.amount} {self.currency.upper()})"

    @property
    def is_active(self) -> bool:
        return self.status in HoldStatus.active()

    def record_settlement(self, cancellation_fee: int, refund_amount: int) -> None:
        self.cancellation_fee = cancellation_fee
        self.refund_amount = refund_amount

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=HoldStatus.REQUIRES_CAPTURE,
        target=HoldStatus.SUCCEEDED,
    )
    def capture(self):
        """
        Transition: REQUIRES_CAPTURE -> SUCCEEDED

        Called once Stripe reports the capture succeeded.
        """
        self.captured_at = timezone.now()

    @transition(
        field=status,
        source=HoldStatus.REQUIRES_CAPTURE,
        target=HoldStatus.CANCELED,
    )
    def cancel(self, uncollected_fee: int = 0):
        """
        Transition: REQUIRES_CAPTURE -> CANCELED

        The authorization was released, so no money moved and the whole
        amount stays with the customer. A policy fee that applied but could
        not be collected is kept in metadata for reporting.
        """
        self.canceled_at = timezone.now()
        self.record_settlement(0, self.amount)
        if uncollected_fee:
            self.metadata = {**self.metadata, "uncollected_cancellation_fee": uncollected_fee}

    @transition(
        field=status,
        source=HoldStatus.SUCCEEDED,
        target=HoldStatus.REFUNDED,
    )
    def refund(self, cancellation_fee: int, refund_amount: int, stripe_refund_id: str | None = None):
        """
        Transition: SUCCEEDED -> REFUNDED

        A partial (or full) refund of refund_amount was issued; the
        operator keeps cancellation_fee.
        """
        self.refunded_at = timezone.now()
        self.record_settlement(cancellation_fee, refund_amount)
        if stripe_refund_id:
            self.metadata = {**self.metadata, "stripe_refund_id": stripe_refund_id}

    @transition(
        field=status,
        source=HoldStatus.SUCCEEDED,
        target=HoldStatus.CANCELLATION_FEE_CHARGED,
    )
    def retain_fee(self, cancellation_fee: int):
        """
        Transition: SUCCEEDED -> CANCELLATION_FEE_CHARGED

        The whole captured amount is the fee; nothing goes back.
        """
        self.record_settlement(cancellation_fee, 0)


# Columns a transition may change; persisted together by transition_hold
TRANSITION_FIELDS = (
    "status",
    "captured_at",
    "canceled_at",
    "refunded_at",
    "cancellation_fee",
    "refund_amount",
    "metadata",
)
