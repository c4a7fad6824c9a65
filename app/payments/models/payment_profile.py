"""
PaymentProfile model.

Created by the booking flow when the customer saves a card. It records
which Stripe customer and payment method to authorize against, and
whether that authorization has happened yet.

Usage:
    profile = PaymentProfile.objects.get(reservation=reservation)
    profile.mark_authorized()
    profile.save()
"""

from __future__ import annotations

from django.db import models

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentProfileStatus


class PaymentProfile(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stored card details for one reservation.

    State Flow:
        REQUEST -> REQUIRES_CAPTURE (authorization created)
        REQUEST/REQUIRES_CAPTURE -> CANCELED (reservation cancelled)

    Note:
        status is protected: re-fetch the row instead of calling
        refresh_from_db() on it.
    """

    reservation = models.OneToOneField(
        "reservations.Reservation",
        on_delete=models.CASCADE,
        related_name="payment_profile",
        help_text="Reservation this card was saved for",
    )

    stripe_customer_id = models.CharField(
        max_length=255,
        help_text="Stripe Customer ID (cus_xxx) on the operator's account",
    )

    stripe_payment_method_id = models.CharField(
        max_length=255,
        help_text="Stripe PaymentMethod ID (pm_xxx) to charge off-session",
    )

    customer_email = models.EmailField(
        blank=True,
        default="",
        help_text="Receipt email for the customer",
    )

    status = FSMField(
        default=PaymentProfileStatus.REQUEST,
        choices=PaymentProfileStatus.choices,
        db_index=True,
        protected=True,
        help_text="Authorization state (managed by FSM)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Profile"
        verbose_name_plural = "Payment Profiles"

    def __str__(self) -> str:
        return f"PaymentProfile({self.reservation_id}, {self.status})"

    @transition(
        field=status,
        source=PaymentProfileStatus.REQUEST,
        target=PaymentProfileStatus.REQUIRES_CAPTURE,
    )
    def mark_authorized(self):
        """
        Record that an authorization hold now exists.

        Transition: REQUEST -> REQUIRES_CAPTURE
        """

    @transition(
        field=status,
        source=[PaymentProfileStatus.REQUEST, PaymentProfileStatus.REQUIRES_CAPTURE],
        target=PaymentProfileStatus.CANCELED,
    )
    def cancel(self):
        """
        Stop the profile from being authorized or captured.

        Transition: REQUEST/REQUIRES_CAPTURE -> CANCELED
        """
