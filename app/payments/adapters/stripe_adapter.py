"""
Stripe API adapter for deferred-payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. Every call is made on behalf of the operator's
connected account (the `stripe_account` request option).

Features:
- Configurable timeouts on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Deterministic idempotency keys for safe retries

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries performed by the SDK (default: 3)

Usage:
    from payments.adapters import CreateAuthorizationParams, StripeAdapter

    result = StripeAdapter.create_authorization(
        CreateAuthorizationParams(
            amount=10000,
            currency="jpy",
            customer_id="cus_xxx",
            payment_method_id="pm_xxx",
            stripe_account="acct_xxx",
            idempotency_key=IdempotencyKeyGenerator.generate("authorize", f"{reservation.id}:pm_xxx"),
        )
    )

    result = StripeAdapter.capture_payment_intent(
        payment_intent_id="pi_xxx",
        idempotency_key=IdempotencyKeyGenerator.generate("capture", hold.id),
        stripe_account="acct_xxx",
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import requests
import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateAuthorizationParams:
    """
    Parameters for an off-session, manual-capture PaymentIntent.

    Attributes:
        amount: Amount to authorize in minor currency units
        currency: ISO 4217 currency code
        customer_id: Stripe Customer ID on the connected account
        payment_method_id: Stored PaymentMethod to confirm with
        stripe_account: Connected account ID (acct_xxx)
        idempotency_key: Deterministic key for the reservation
        receipt_email: Optional receipt address
        metadata: Key-value pairs to attach to the PaymentIntent
    """

    amount: int
    currency: str
    customer_id: str
    payment_method_id: str
    stripe_account: str
    idempotency_key: str
    receipt_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.stripe_account:
            raise ValueError("stripe_account is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_capture, succeeded, canceled, ...)
        amount: Amount in minor units
        currency: Currency code
        amount_received: Captured amount in minor units
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount: int
    currency: str
    amount_received: int = 0
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, intent: Any) -> PaymentIntentResult:
        return cls(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            amount_received=intent.amount_received or 0,
            metadata=dict(intent.metadata or {}),
            raw_response=intent.to_dict(),
        )


@dataclass
class RefundResult:
    """
    Result from Stripe Refund operations.

    Attributes:
        id: Refund ID (re_xxx)
        amount: Refunded amount in minor units
        currency: Currency code
        status: Refund status (succeeded, pending, failed)
        payment_intent_id: Original PaymentIntent ID
        raw_response: Full Stripe response dict
    """

    id: str
    amount: int
    currency: str
    status: str
    payment_intent_id: str
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same reservation or
    hold always yields the same key, so a retry after a timeout replays the
    original Stripe response instead of authorizing or refunding twice.

    Example:
        key = IdempotencyKeyGenerator.generate("capture", hold.id)
        # "capture:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def _is_timeout(error: Exception) -> bool:
    cause = error.__cause__ or error.__context__
    if isinstance(cause, requests.exceptions.Timeout):
        return True
    return "timeout" in str(error).lower() or "timed out" in str(error).lower()


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained, but an
    instance satisfies PaymentGateway and can be injected into services.
    Thread-safe for use from Celery workers.
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        level: int = logging.INFO,
    ) -> Any:
        """
        Run one Stripe call with timing, logging and error translation.

        Raises:
            StripeError: Translated from the SDK exception
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            response = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                "object_id": getattr(response, "id", None),
                "status": getattr(response, "status", None),
                "duration_ms": duration_ms,
            },
        )
        return response

    # =========================================================================
    # Core Operations
    # =========================================================================

    @classmethod
    def create_authorization(cls, params: CreateAuthorizationParams) -> PaymentIntentResult:
        """
        Create and confirm a manual-capture PaymentIntent off-session.

        On success the intent is normally in requires_capture. Cards that
        need customer authentication raise StripeCardDeclinedError with
        decline code authentication_required.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidAccountError: Connected account rejected
            StripeTimeoutError: Outcome unknown, retry with the same key
        """
        log_context = {
            "operation": "create_authorization",
            "amount": params.amount,
            "currency": params.currency,
            "stripe_account": params.stripe_account,
            "idempotency_key": params.idempotency_key,
        }

        create_kwargs: dict[str, Any] = {
            "amount": params.amount,
            "currency": params.currency,
            "customer": params.customer_id,
            "payment_method": params.payment_method_id,
            "payment_method_types": ["card"],
            "capture_method": "manual",
            "confirm": True,
            "off_session": True,
            "metadata": params.metadata,
        }
        if params.receipt_email:
            create_kwargs["receipt_email"] = params.receipt_email

        intent = cls._execute(
            log_context,
            lambda: stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                stripe_account=params.stripe_account,
                **create_kwargs,
            ),
        )
        return PaymentIntentResult.from_stripe(intent)

    @classmethod
    def capture_payment_intent(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
        amount_to_capture: int | None = None,
    ) -> PaymentIntentResult:
        """
        Capture an authorized PaymentIntent (full amount unless given).

        Raises:
            StripeInvalidRequestError: PaymentIntent not capturable
            StripeTimeoutError: Outcome unknown, retry with the same key
        """
        log_context = {
            "operation": "capture_payment_intent",
            "payment_intent_id": payment_intent_id,
            "stripe_account": stripe_account,
            "idempotency_key": idempotency_key,
            "amount_to_capture": amount_to_capture,
        }

        capture_kwargs: dict[str, Any] = {}
        if amount_to_capture is not None:
            capture_kwargs["amount_to_capture"] = amount_to_capture

        intent = cls._execute(
            log_context,
            lambda: stripe.PaymentIntent.capture(
                payment_intent_id,
                idempotency_key=idempotency_key,
                stripe_account=stripe_account,
                **capture_kwargs,
            ),
        )
        return PaymentIntentResult.from_stripe(intent)

    @classmethod
    def cancel_payment_intent(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
    ) -> PaymentIntentResult:
        """
        Release an uncaptured authorization.

        Raises:
            StripeInvalidRequestError: PaymentIntent already captured or canceled
        """
        log_context = {
            "operation": "cancel_payment_intent",
            "payment_intent_id": payment_intent_id,
            "stripe_account": stripe_account,
            "idempotency_key": idempotency_key,
        }

        intent = cls._execute(
            log_context,
            lambda: stripe.PaymentIntent.cancel(
                payment_intent_id,
                cancellation_reason="requested_by_customer",
                idempotency_key=idempotency_key,
                stripe_account=stripe_account,
            ),
        )
        return PaymentIntentResult.from_stripe(intent)

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        stripe_account: str,
        amount: int | None = None,
    ) -> RefundResult:
        """
        Refund a captured PaymentIntent.

        Args:
            amount: Amount to refund (None for full refund)

        Raises:
            StripeInvalidRequestError: Refund not possible
        """
        log_context = {
            "operation": "create_refund",
            "payment_intent_id": payment_intent_id,
            "stripe_account": stripe_account,
            "amount": amount,
            "idempotency_key": idempotency_key,
        }

        refund_kwargs: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "reason": "requested_by_customer",
        }
        if amount is not None:
            refund_kwargs["amount"] = amount

        refund = cls._execute(
            log_context,
            lambda: stripe.Refund.create(
                idempotency_key=idempotency_key,
                stripe_account=stripe_account,
                **refund_kwargs,
            ),
        )
        return RefundResult(
            id=refund.id,
            amount=refund.amount,
            currency=refund.currency,
            status=refund.status,
            payment_intent_id=refund.payment_intent,
            raw_response=refund.to_dict(),
        )

    @classmethod
    def retrieve_payment_intent(
        cls,
        payment_intent_id: str,
        stripe_account: str,
    ) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
            "stripe_account": stripe_account,
        }

        intent = cls._execute(
            log_context,
            lambda: stripe.PaymentIntent.retrieve(
                payment_intent_id,
                stripe_account=stripe_account,
            ),
            level=logging.DEBUG,
        )
        return PaymentIntentResult.from_stripe(intent)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: No response in time, outcome unknown
            StripeAPIUnavailableError: API unavailable
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )

            if error.code == "account_invalid" or "no such account" in str(error).lower():
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            if _is_timeout(error):
                logger.error(
                    "Stripe request timed out, outcome unknown",
                    extra=log_context,
                )
                raise StripeTimeoutError(
                    "Stripe did not respond in time. The operation may have completed.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
