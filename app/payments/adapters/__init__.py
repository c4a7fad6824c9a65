"""
Payment adapters for external services.

All gateway calls go through these adapters to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import PaymentGateway, StripeAdapter

    gateway: PaymentGateway = StripeAdapter()
"""

from payments.adapters.protocols import PaymentGateway
from payments.adapters.stripe_adapter import (
    CreateAuthorizationParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "CreateAuthorizationParams",
    "IdempotencyKeyGenerator",
    "PaymentGateway",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
]
