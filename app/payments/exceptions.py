"""
Payment-specific exceptions for the deferred-payment lifecycle.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── ReservationNotFoundError - Reservation lookup failures
    ├── PolicyError - Cancellation policy problems
    │   ├── PolicyNotFoundError - Operator has no policy (POLICY_MISSING)
    │   └── PolicyInvalidError - Stored tiers are malformed (POLICY_INVALID)
    ├── GatewayAccountMissingError - Operator has no usable Stripe account
    ├── StoreWriteFailedError - Gateway succeeded but the local write failed
    └── PaymentProcessingError - Payment processing failures
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (outcome unknown)

    StaleRecordError - Hold changed under us (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)
    ReservationNotCancellableError - Reservation is no longer confirmed (inherits ConflictError)

Usage:
    from payments.exceptions import PolicyNotFoundError, StaleRecordError

    raise PolicyNotFoundError(
        f"Operator {operator_id} has no cancellation policy",
        details={"operator_id": operator_id},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            scheduler.capture_hold(hold_id)
        except PaymentError as e:
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class ReservationNotFoundError(PaymentError):
    """Raised when a reservation id does not resolve to a row."""

    default_error_code: str = "RESERVATION_NOT_FOUND"


class PolicyError(PaymentError):
    """Base for cancellation policy lookup and validation failures."""

    default_error_code: str = "POLICY_ERROR"


class PolicyNotFoundError(PolicyError):
    """
    Raised when an operator has no cancellation policy.

    Settlement refuses to guess a fee in this case; authorization falls
    back to the default capture lead time instead.
    """

    default_error_code: str = "POLICY_MISSING"


class PolicyInvalidError(PolicyError):
    """
    Raised when stored policy tiers cannot be parsed.

    Details carry the offending tier index and reason when known.
    """

    default_error_code: str = "POLICY_INVALID"


class GatewayAccountMissingError(PaymentError):
    """
    Raised when the operator has no Stripe Connect account able to charge.

    Covers both a missing ConnectedAccount row and one whose
    charges_enabled flag is off.
    """

    default_error_code: str = "GATEWAY_ACCOUNT_MISSING"


class StoreWriteFailedError(PaymentError):
    """
    Raised when money moved at Stripe but the local write did not land.

    These are logged at CRITICAL and picked up by reconciliation, which
    re-reads the PaymentIntent and heals the local status.
    """

    default_error_code: str = "STORE_WRITE_FAILED"


class PaymentProcessingError(PaymentError):
    """Raised when a payment gateway operation fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried

    Retrying a mutating call is only safe with the same idempotency key,
    which is why keys are derived from the hold or reservation id.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    Common with off-session authorizations on stored cards: expired_card,
    authentication_required, generic_decline.
    """

    default_error_code: str = "CARD_DECLINED"


class StripeInsufficientFundsError(StripeError):
    """Insufficient funds on the stored payment method."""

    default_error_code: str = "INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """
    The operator's Connect account was rejected by Stripe.

    Requires manual intervention on the account before retrying.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Includes acting on a PaymentIntent that is no longer capturable or
    cancelable. Usually a local/remote state mismatch; reconciliation
    resolves it.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network connectivity issues and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    IMPORTANT: The operation may have succeeded on Stripe's side. The
    local hold is left untouched; the next scheduler tick retries with the
    same idempotency key and Stripe replays the original response.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when a hold was modified between read and write.

    Details contain the hold id and the expected/actual status or version.
    Callers re-read and re-evaluate rather than overwrite.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another worker is already moving this reservation's hold.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with the standard error format.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class ReservationNotCancellableError(ConflictError):
    """Raised when a reservation is no longer confirmed and cannot be cancelled."""

    default_error_code: str = "RESERVATION_NOT_CANCELLABLE"


__all__ = [
    # Payment domain
    "PaymentError",
    "ReservationNotFoundError",
    "PolicyError",
    "PolicyNotFoundError",
    "PolicyInvalidError",
    "GatewayAccountMissingError",
    "StoreWriteFailedError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # Concurrency control
    "StaleRecordError",
    "ReservationNotCancellableError",
    "LockAcquisitionError",
    "InvalidStateTransitionError",
]
