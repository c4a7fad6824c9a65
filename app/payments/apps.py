"""
Payments app configuration.

This app provides the deferred-payment lifecycle for reservations:
- Card authorization ahead of the appointment
- Capture on the policy-derived capture date
- Cancellation fee settlement (cancel or partial refund)
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
