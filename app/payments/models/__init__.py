"""
Payment domain models.

This module contains all payment-related models:
- PaymentProfile: Saved card details for a reservation, awaiting authorization
- PaymentHold: Manual-capture PaymentIntent mirror for a reservation
- CancellationPolicy: Operator's tiered cancellation-fee rules
- ConnectedAccount: Operator's Stripe Connect account
"""

from payments.models.cancellation_policy import CancellationPolicy
from payments.models.connected_account import ConnectedAccount
from payments.models.hold import TRANSITION_FIELDS, PaymentHold
from payments.models.payment_profile import PaymentProfile

__all__ = [
    "CancellationPolicy",
    "ConnectedAccount",
    "PaymentHold",
    "PaymentProfile",
    "TRANSITION_FIELDS",
]
