"""
Tests for Stripe adapter.

Tests cover:
- Authorization parameter validation
- Idempotency key generation
- Error translation for each exception type
- Successful API operations on the connected account
"""

import uuid

import pytest
from django.test import override_settings

from payments.adapters import (
    CreateAuthorizationParams,
    IdempotencyKeyGenerator,
    PaymentGateway,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


# =============================================================================
# CreateAuthorizationParams Tests
# =============================================================================


class TestCreateAuthorizationParams:
    """Tests for CreateAuthorizationParams dataclass validation."""

    def test_valid_params(self, authorization_params):
        params = authorization_params(metadata={"reservation_id": "r1"})

        assert params.amount == 10000
        assert params.currency == "jpy"
        assert params.stripe_account == "acct_salon123"
        assert params.receipt_email is None
        assert params.metadata == {"reservation_id": "r1"}

    def test_amount_must_be_positive(self, authorization_params):
        with pytest.raises(ValueError, match="amount must be positive"):
            authorization_params(amount=0)

    def test_idempotency_key_required(self, authorization_params):
        with pytest.raises(ValueError, match="idempotency_key is required"):
            authorization_params(idempotency_key="")

    def test_stripe_account_required(self, authorization_params):
        with pytest.raises(ValueError, match="stripe_account is required"):
            authorization_params(stripe_account="")


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_generate_key_format(self):
        """Should generate key in correct format."""
        entity_id = uuid.uuid4()
        key = IdempotencyKeyGenerator.generate(operation="capture", entity_id=entity_id)

        parts = key.split(":")
        assert len(parts) == 4
        assert parts[0] == "capture"
        assert parts[1] == str(entity_id)
        assert parts[2] == "1"
        assert len(parts[3]) == 8

    def test_same_inputs_give_same_key(self):
        """Retries after a timeout must reuse the original key."""
        entity_id = uuid.uuid4()

        first = IdempotencyKeyGenerator.generate("authorize", entity_id)
        second = IdempotencyKeyGenerator.generate("authorize", str(entity_id))

        assert first == second

    def test_operation_changes_key(self):
        entity_id = uuid.uuid4()

        assert IdempotencyKeyGenerator.generate(
            "cancel", entity_id
        ) != IdempotencyKeyGenerator.generate("refund", entity_id)

    def test_secret_key_changes_hash(self):
        entity_id = uuid.uuid4()

        with override_settings(SECRET_KEY="first-secret"):
            first = IdempotencyKeyGenerator.generate("capture", entity_id)
        with override_settings(SECRET_KEY="second-secret"):
            second = IdempotencyKeyGenerator.generate("capture", entity_id)

        assert first != second


def test_adapter_satisfies_gateway_protocol():
    assert isinstance(StripeAdapter(), PaymentGateway)


# =============================================================================
# StripeAdapter Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        """Set up common mocks for all tests."""
        pass

    def test_card_declined_error(
        self, mock_stripe_payment_intent, card_error, authorization_params
    ):
        """Should translate CardError to StripeCardDeclinedError."""
        mock_stripe_payment_intent.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_authorization(authorization_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False
        assert exc_info.value.error_code == "CARD_DECLINED"

    def test_insufficient_funds_error(
        self, mock_stripe_payment_intent, card_error, authorization_params
    ):
        """Should translate insufficient funds to StripeInsufficientFundsError."""
        mock_stripe_payment_intent.create.side_effect = card_error(
            message="Your card has insufficient funds.",
            decline_code="insufficient_funds",
        )

        with pytest.raises(StripeInsufficientFundsError) as exc_info:
            StripeAdapter.create_authorization(authorization_params())

        assert exc_info.value.decline_code == "insufficient_funds"

    def test_invalid_request_error(self, mock_stripe_payment_intent, invalid_request_error):
        """Should translate InvalidRequestError to StripeInvalidRequestError."""
        mock_stripe_payment_intent.capture.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.capture_payment_intent(
                "pi_test", idempotency_key="key", stripe_account="acct_test"
            )

        assert exc_info.value.stripe_code == "payment_intent_unexpected_state"
        assert exc_info.value.is_retryable is False

    def test_invalid_account_error(
        self, mock_stripe_payment_intent, invalid_request_error, authorization_params
    ):
        """Should translate account errors to StripeInvalidAccountError."""
        mock_stripe_payment_intent.create.side_effect = invalid_request_error(
            message="No such account: 'acct_gone'",
            param=None,
            code="account_invalid",
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.create_authorization(authorization_params())

    def test_rate_limit_error(self, mock_stripe_payment_intent, rate_limit_error):
        mock_stripe_payment_intent.cancel.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.cancel_payment_intent(
                "pi_test", idempotency_key="key", stripe_account="acct_test"
            )

        assert exc_info.value.is_retryable is True

    def test_connection_error(self, mock_stripe_payment_intent, api_connection_error):
        mock_stripe_payment_intent.capture.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.capture_payment_intent(
                "pi_test", idempotency_key="key", stripe_account="acct_test"
            )

        assert exc_info.value.is_retryable is True

    def test_timeout_error(self, mock_stripe_payment_intent, timeout_error):
        """A timed-out call has an unknown outcome and is reported as such."""
        mock_stripe_payment_intent.capture.side_effect = timeout_error

        with pytest.raises(StripeTimeoutError) as exc_info:
            StripeAdapter.capture_payment_intent(
                "pi_test", idempotency_key="key", stripe_account="acct_test"
            )

        assert exc_info.value.is_retryable is True
        assert exc_info.value.error_code == "STRIPE_TIMEOUT"

    def test_api_error(self, mock_stripe_refund, api_error):
        mock_stripe_refund.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_refund(
                "pi_test", idempotency_key="key", stripe_account="acct_test", amount=100
            )

    def test_authentication_error(self, mock_stripe_payment_intent, authentication_error):
        mock_stripe_payment_intent.retrieve.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.retrieve_payment_intent("pi_test", stripe_account="acct_test")

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unknown_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.retrieve.side_effect = RuntimeError("boom")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.retrieve_payment_intent("pi_test", stripe_account="acct_test")

        assert exc_info.value.stripe_code == "unknown_error"
        assert isinstance(exc_info.value.__cause__, RuntimeError)


# =============================================================================
# StripeAdapter Operation Tests
# =============================================================================


class TestStripeAdapterCreateAuthorization:
    """Tests for StripeAdapter.create_authorization."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_creates_manual_capture_intent_on_connected_account(
        self, mock_stripe_payment_intent, authorization_params
    ):
        params = authorization_params(
            receipt_email="guest@example.com",
            metadata={"reservation_id": "r1"},
        )

        result = StripeAdapter.create_authorization(params)

        assert isinstance(result, PaymentIntentResult)
        assert result.id == "pi_test123456"
        assert result.status == "requires_capture"

        call_kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert call_kwargs["amount"] == 10000
        assert call_kwargs["currency"] == "jpy"
        assert call_kwargs["customer"] == "cus_test123"
        assert call_kwargs["payment_method"] == "pm_test123"
        assert call_kwargs["capture_method"] == "manual"
        assert call_kwargs["confirm"] is True
        assert call_kwargs["off_session"] is True
        assert call_kwargs["stripe_account"] == "acct_salon123"
        assert call_kwargs["idempotency_key"] == "authorize:test-key"
        assert call_kwargs["receipt_email"] == "guest@example.com"
        assert call_kwargs["metadata"] == {"reservation_id": "r1"}

    def test_receipt_email_omitted_when_absent(
        self, mock_stripe_payment_intent, authorization_params
    ):
        StripeAdapter.create_authorization(authorization_params())

        assert "receipt_email" not in mock_stripe_payment_intent.create.call_args.kwargs


class TestStripeAdapterCapturePaymentIntent:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_capture_full_amount(self, mock_stripe_payment_intent):
        result = StripeAdapter.capture_payment_intent(
            "pi_test123456",
            idempotency_key="capture:key",
            stripe_account="acct_salon123",
        )

        assert result.status == "succeeded"
        assert result.amount_received == 10000

        call = mock_stripe_payment_intent.capture.call_args
        assert call.args == ("pi_test123456",)
        assert call.kwargs == {
            "idempotency_key": "capture:key",
            "stripe_account": "acct_salon123",
        }

    def test_capture_partial_amount(self, mock_stripe_payment_intent):
        StripeAdapter.capture_payment_intent(
            "pi_test123456",
            idempotency_key="capture:key",
            stripe_account="acct_salon123",
            amount_to_capture=4000,
        )

        assert mock_stripe_payment_intent.capture.call_args.kwargs["amount_to_capture"] == 4000


class TestStripeAdapterCancelPaymentIntent:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_cancel(self, mock_stripe_payment_intent):
        result = StripeAdapter.cancel_payment_intent(
            "pi_test123456",
            idempotency_key="cancel:key",
            stripe_account="acct_salon123",
        )

        assert result.status == "canceled"
        call_kwargs = mock_stripe_payment_intent.cancel.call_args.kwargs
        assert call_kwargs["cancellation_reason"] == "requested_by_customer"
        assert call_kwargs["stripe_account"] == "acct_salon123"
        assert call_kwargs["idempotency_key"] == "cancel:key"


class TestStripeAdapterCreateRefund:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_partial_refund(self, mock_stripe_refund):
        result = StripeAdapter.create_refund(
            "pi_test123456",
            idempotency_key="refund:key",
            stripe_account="acct_salon123",
            amount=5000,
        )

        assert isinstance(result, RefundResult)
        assert result.id == "re_test123456"
        assert result.amount == 5000
        assert result.payment_intent_id == "pi_test123456"

        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["payment_intent"] == "pi_test123456"
        assert call_kwargs["amount"] == 5000
        assert call_kwargs["stripe_account"] == "acct_salon123"

    def test_full_refund_omits_amount(self, mock_stripe_refund):
        StripeAdapter.create_refund(
            "pi_test123456",
            idempotency_key="refund:key",
            stripe_account="acct_salon123",
        )

        assert "amount" not in mock_stripe_refund.create.call_args.kwargs


class TestStripeAdapterRetrievePaymentIntent:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_retrieve(self, mock_stripe_payment_intent, mock_payment_intent):
        mock_stripe_payment_intent.retrieve.return_value = mock_payment_intent(
            status="succeeded", amount_received=10000
        )

        result = StripeAdapter.retrieve_payment_intent(
            "pi_test123456", stripe_account="acct_salon123"
        )

        assert result.status == "succeeded"
        mock_stripe_payment_intent.retrieve.assert_called_once_with(
            "pi_test123456", stripe_account="acct_salon123"
        )
