"""
Reservation model.

Only the fields the payment lifecycle reads or writes are modelled here;
customer and menu details live with the booking front end.

Usage:
    from reservations.models import CancellationType, Reservation

    reservation = Reservation.objects.get(id=reservation_id)
    reservation.mark_cancelled(CancellationType.SAME_DAY)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ReservationStatus(models.TextChoices):
    """
    Booking states.

    Only CONFIRMED reservations are eligible for payment authorization.
    """

    CONFIRMED = "confirmed", "Confirmed"
    CANCELLED = "cancelled", "Cancelled"
    SAME_DAY_CANCELLED = "same_day_cancelled", "Same-day cancelled"
    SALON_CANCELLED = "salon_cancelled", "Cancelled by salon"
    NO_SHOW = "no_show", "No show"
    PAID = "paid", "Paid"


class CancellationType(models.TextChoices):
    """Kind of customer cancellation, decided by the caller."""

    SAME_DAY = "same_day_cancellation", "Same-day cancellation"
    ADVANCE = "advance_cancellation", "Advance cancellation"


class Reservation(UUIDPrimaryKeyMixin, BaseModel):
    """
    A salon appointment owned by an operator.

    Fields:
        operator: Salon owner the reservation belongs to
        total_price: Price in minor currency units (yen)
        start_time: Appointment start
        status: Booking state (see ReservationStatus)
    """

    operator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reservations",
        help_text="Operator (salon owner) the reservation belongs to",
    )

    total_price = models.PositiveBigIntegerField(
        help_text="Reservation price in minor currency units",
    )

    start_time = models.DateTimeField(
        db_index=True,
        help_text="When the appointment starts",
    )

    status = models.CharField(
        max_length=32,
        choices=ReservationStatus.choices,
        default=ReservationStatus.CONFIRMED,
        db_index=True,
        help_text="Current booking status",
    )

    class Meta:
        ordering = ["start_time"]
        verbose_name = "Reservation"
        verbose_name_plural = "Reservations"
        indexes = [
            models.Index(fields=["status", "start_time"], name="reservation_status_start_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_price__gt=0),
                name="reservation_total_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Reservation({self.id}, {self.status}, {self.start_time:%Y-%m-%d %H:%M})"

    @property
    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED

    def mark_cancelled(self, cancellation_type: str) -> None:
        """
        Record a customer cancellation and save.

        Same-day cancellations are tracked separately from advance ones.
        """
        if cancellation_type == CancellationType.SAME_DAY:
            self.status = ReservationStatus.SAME_DAY_CANCELLED
        else:
            self.status = ReservationStatus.CANCELLED
        self.save(update_fields=["status", "updated_at"])
