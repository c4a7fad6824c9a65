"""
Protocol definition for the payment gateway.

Services depend on this interface rather than on StripeAdapter directly,
so schedulers and settlement can be constructed with a fake gateway in
tests.

Usage:
    from payments.adapters.protocols import PaymentGateway

    class CaptureScheduler:
        def __init__(self, gateway: PaymentGateway | None = None):
            self.gateway = gateway or StripeAdapter()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from payments.adapters.stripe_adapter import (
        CreateAuthorizationParams,
        PaymentIntentResult,
        RefundResult,
    )


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Gateway operations used by the deferred-payment lifecycle.

    Every call is scoped to the operator's connected account and every
    mutating call takes an idempotency key, so a retry after an unknown
    outcome replays the original result.
    """

    def create_authorization(self, params: CreateAuthorizationParams) -> PaymentIntentResult:
        """Place a manual-capture hold for the full amount on the stored card."""
        ...

    def capture_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
        amount_to_capture: int | None = None,
    ) -> PaymentIntentResult:
        """Capture an authorized PaymentIntent."""
        ...

    def cancel_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
    ) -> PaymentIntentResult:
        """Release an uncaptured authorization."""
        ...

    def create_refund(
        self,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
        amount: int | None = None,
    ) -> RefundResult:
        """Refund part or all of a captured PaymentIntent."""
        ...

    def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        stripe_account: str,
    ) -> PaymentIntentResult:
        """Read the current PaymentIntent state."""
        ...
