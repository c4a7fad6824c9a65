"""
Reservations app configuration.

Holds the booking-side records the payment lifecycle reads: price, start
time, owning operator and reservation status.
"""

from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    """Configuration for the reservations application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "reservations"
    verbose_name = "Reservations"
