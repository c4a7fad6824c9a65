"""
State enums for payment models.

These are Django TextChoices used as django-fsm field choices.

State Machines Overview:

PaymentHold States (mirror the Stripe PaymentIntent):
    requires_capture → succeeded (capture)
    requires_capture → canceled (cancel)
    succeeded → refunded (refund)
    succeeded → cancellation_fee_charged (retain_fee)

PaymentProfile States:
    request → requires_capture (authorization created)
    request/requires_capture → canceled (reservation cancelled)
"""

from django.db import models


class HoldStatus(models.TextChoices):
    """
    States for the PaymentHold model lifecycle.

    Terminal states: CANCELED, REFUNDED, CANCELLATION_FEE_CHARGED

    Values match Stripe's PaymentIntent statuses where one exists, so a
    retrieved intent's status can be compared directly.
    """

    REQUIRES_CAPTURE = "requires_capture", "Requires capture"
    SUCCEEDED = "succeeded", "Captured"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"
    CANCELLATION_FEE_CHARGED = "cancellation_fee_charged", "Cancellation fee charged"

    @classmethod
    def active(cls) -> list[str]:
        """States settlement can still move a hold out of."""
        return [cls.REQUIRES_CAPTURE, cls.SUCCEEDED]

    @classmethod
    def terminal(cls) -> list[str]:
        return [cls.CANCELED, cls.REFUNDED, cls.CANCELLATION_FEE_CHARGED]


class PaymentProfileStatus(models.TextChoices):
    """
    States for the PaymentProfile model lifecycle.

    REQUEST means the customer saved a card but no authorization exists yet.
    """

    REQUEST = "request", "Authorization requested"
    REQUIRES_CAPTURE = "requires_capture", "Authorized"
    CANCELED = "canceled", "Canceled"
