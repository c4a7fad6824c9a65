"""
Pytest fixtures for payment tests.

This module provides fixtures for creating payment-related test data,
a fake payment gateway and an in-memory Redis stand-in for the hold
locks.

Usage:
    def test_capture(due_hold, fake_gateway):
        summary = CaptureScheduler(gateway=fake_gateway).run()
        assert summary.succeeded == 1
"""

import itertools
from datetime import timedelta

import pytest
from django.utils import timezone

from payments.adapters import PaymentIntentResult, RefundResult
from payments.state_machines import HoldStatus
from payments.tests.factories import (
    CancellationPolicyFactory,
    ConnectedAccountFactory,
    PaymentHoldFactory,
    PaymentProfileFactory,
)
from reservations.tests.factories import ReservationFactory, UserFactory


# =============================================================================
# Redis
# =============================================================================


class FakeRedis:
    """
    Dict-backed stand-in for the Redis commands DistributedLock uses.

    Honors SET NX and the release script; TTLs are ignored.
    """

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def eval(self, script, numkeys, key, token, *args):
        if self.store.get(key) != token:
            return 0
        if "del" in script:
            del self.store[key]
        return 1


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    """Route payments.locks to an in-memory Redis for every payments test."""
    client = FakeRedis()
    mocker.patch("payments.locks.get_redis_connection", return_value=client)
    return client


# =============================================================================
# Gateway
# =============================================================================


class FakeGateway:
    """
    In-memory PaymentGateway.

    Every call is recorded in `calls` as (method, kwargs). Set
    `errors[method]` to an exception to make that method raise, and the
    *_status attributes to control the PaymentIntent status returned.
    """

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.authorization_status = HoldStatus.REQUIRES_CAPTURE
        self.capture_status = HoldStatus.SUCCEEDED
        self.retrieve_status = HoldStatus.REQUIRES_CAPTURE
        self._ids = itertools.count(1)

    def calls_to(self, method):
        return [kwargs for name, kwargs in self.calls if name == method]

    def _record(self, method, **kwargs):
        self.calls.append((method, kwargs))
        if method in self.errors:
            raise self.errors[method]

    def create_authorization(self, params):
        self._record("create_authorization", params=params)
        return PaymentIntentResult(
            id=f"pi_fake_{next(self._ids)}",
            status=self.authorization_status,
            amount=params.amount,
            currency=params.currency,
            metadata=params.metadata,
        )

    def capture_payment_intent(
        self, payment_intent_id, idempotency_key, stripe_account, amount_to_capture=None
    ):
        self._record(
            "capture_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            stripe_account=stripe_account,
            amount_to_capture=amount_to_capture,
        )
        return PaymentIntentResult(
            id=payment_intent_id,
            status=self.capture_status,
            amount=10000,
            currency="jpy",
            amount_received=10000 if self.capture_status == HoldStatus.SUCCEEDED else 0,
        )

    def cancel_payment_intent(self, payment_intent_id, idempotency_key, stripe_account):
        self._record(
            "cancel_payment_intent",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            stripe_account=stripe_account,
        )
        return PaymentIntentResult(
            id=payment_intent_id,
            status=HoldStatus.CANCELED,
            amount=10000,
            currency="jpy",
        )

    def create_refund(self, payment_intent_id, idempotency_key, stripe_account, amount=None):
        self._record(
            "create_refund",
            payment_intent_id=payment_intent_id,
            idempotency_key=idempotency_key,
            stripe_account=stripe_account,
            amount=amount,
        )
        return RefundResult(
            id=f"re_fake_{next(self._ids)}",
            amount=amount or 0,
            currency="jpy",
            status="succeeded",
            payment_intent_id=payment_intent_id,
        )

    def retrieve_payment_intent(self, payment_intent_id, stripe_account):
        self._record(
            "retrieve_payment_intent",
            payment_intent_id=payment_intent_id,
            stripe_account=stripe_account,
        )
        return PaymentIntentResult(
            id=payment_intent_id,
            status=self.retrieve_status,
            amount=10000,
            currency="jpy",
        )


@pytest.fixture
def fake_gateway():
    return FakeGateway()


# =============================================================================
# Operator Fixtures
# =============================================================================


@pytest.fixture
def operator(db):
    """Create a salon operator."""
    return UserFactory()


@pytest.fixture
def connected_account(operator):
    """Connected account able to take charges."""
    return ConnectedAccountFactory(operator=operator)


@pytest.fixture
def policy(operator):
    """50% within 7 days, 100% within 3 days."""
    return CancellationPolicyFactory(operator=operator)


# =============================================================================
# Reservation / Hold Fixtures
# =============================================================================


@pytest.fixture
def reservation(operator):
    """Confirmed 10000 JPY reservation 10 days out."""
    return ReservationFactory(operator=operator, total_price=10000)


@pytest.fixture
def pending_profile(reservation):
    """Stored card awaiting authorization."""
    return PaymentProfileFactory(reservation=reservation)


@pytest.fixture
def authorized_hold(reservation):
    """Hold in REQUIRES_CAPTURE, not yet due."""
    return PaymentHoldFactory(reservation=reservation)


@pytest.fixture
def due_hold(reservation, connected_account):
    """Hold in REQUIRES_CAPTURE whose capture date has passed."""
    return PaymentHoldFactory(
        reservation=reservation,
        capture_date=timezone.now() - timedelta(minutes=5),
    )


@pytest.fixture
def captured_hold(reservation):
    """Hold already captured."""
    return PaymentHoldFactory(
        reservation=reservation,
        status=HoldStatus.SUCCEEDED,
        captured_at=timezone.now(),
    )
