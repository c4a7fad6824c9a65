"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    HoldStatus,
    PaymentProfileStatus,
)

__all__ = [
    "HoldStatus",
    "PaymentProfileStatus",
]
