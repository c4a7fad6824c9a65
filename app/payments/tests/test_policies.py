"""
Tests for cancellation policy resolution and fee arithmetic.
"""

from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone

from payments.exceptions import PolicyInvalidError, PolicyNotFoundError
from payments.policies import (
    OrderedPolicy,
    PolicyResolver,
    PolicyTier,
    compute_fee,
    days_until,
    parse_tiers,
)
from payments.tests.factories import CancellationPolicyFactory


def make_policy(*pairs, custom_text=""):
    return OrderedPolicy(
        operator_id=1,
        tiers=parse_tiers([{"days": d, "feePercentage": p} for d, p in pairs]),
        custom_text=custom_text,
    )


class TestParseTiers:
    def test_sorts_ascending_by_days(self):
        tiers = parse_tiers(
            [
                {"days": 7, "feePercentage": 50},
                {"days": 1, "feePercentage": 100},
                {"days": 3, "feePercentage": 80},
            ]
        )

        assert [t.days for t in tiers] == [1, 3, 7]

    def test_accepts_legacy_envelope(self):
        tiers = parse_tiers({"policies": [{"days": 2, "feePercentage": 100}], "customText": "x"})

        assert tiers == (PolicyTier(days=2, fee_percentage=100),)

    def test_accepts_integral_strings_and_floats(self):
        tiers = parse_tiers([{"days": "5", "feePercentage": 30.0}])

        assert tiers == (PolicyTier(days=5, fee_percentage=30),)

    def test_duplicate_days_keep_first(self):
        tiers = parse_tiers(
            [
                {"days": 3, "feePercentage": 50},
                {"days": 3, "feePercentage": 100},
            ]
        )

        assert tiers == (PolicyTier(days=3, fee_percentage=50),)

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            {"policies": []},
            "not a list",
            ["not an object"],
            [{"feePercentage": 50}],
            [{"days": -1, "feePercentage": 50}],
            [{"days": 3, "feePercentage": 101}],
            [{"days": 3, "feePercentage": 12.5}],
            [{"days": True, "feePercentage": 50}],
        ],
    )
    def test_rejects_malformed(self, raw):
        with pytest.raises(PolicyInvalidError) as exc_info:
            parse_tiers(raw)

        assert exc_info.value.error_code == "POLICY_INVALID"

    def test_to_dict_uses_camel_case_fee(self):
        assert PolicyTier(days=3, fee_percentage=80).to_dict() == {"days": 3, "feePercentage": 80}


class TestDaysUntil:
    def test_rounds_partial_days_up(self):
        now = timezone.now()

        assert days_until(now + timedelta(days=4, hours=1), now) == 5

    def test_exact_days(self):
        now = timezone.now()

        assert days_until(now + timedelta(days=3), now) == 3

    def test_past_start_is_zero(self):
        now = timezone.now()

        assert days_until(now - timedelta(hours=2), now) == 0


class TestFeePercentage:
    def test_first_ascending_tier_at_or_beyond_applies(self):
        policy = make_policy((7, 50), (3, 100))

        assert policy.fee_percentage_for(0) == 100
        assert policy.fee_percentage_for(3) == 100
        assert policy.fee_percentage_for(4) == 50
        assert policy.fee_percentage_for(7) == 50

    def test_earlier_than_every_tier_is_free(self):
        policy = make_policy((7, 50), (3, 100))

        assert policy.fee_percentage_for(8) == 0
        assert policy.applicable_tier(30) is None

    def test_max_days(self):
        assert make_policy((1, 100), (14, 20), (7, 50)).max_days == 14


class TestComputeFee:
    def test_half_fee(self):
        breakdown = compute_fee(10000, 50)

        assert breakdown.cancellation_fee == 5000
        assert breakdown.refund_amount == 5000

    def test_fee_rounds_down(self):
        breakdown = compute_fee(999, 33)

        assert breakdown.cancellation_fee == 329
        assert breakdown.refund_amount == 670

    @pytest.mark.parametrize("total", [1, 999, 10000, 12345])
    def test_fee_and_refund_sum_to_total(self, total):
        for percentage in range(0, 101):
            breakdown = compute_fee(total, percentage)
            assert breakdown.cancellation_fee + breakdown.refund_amount == total
            assert 0 <= breakdown.cancellation_fee <= total

    def test_fee_grows_as_reservation_approaches(self):
        policy = make_policy((14, 20), (7, 50), (1, 100))

        fees = [compute_fee(10000, policy.fee_percentage_for(d)).cancellation_fee for d in range(20, -1, -1)]

        assert fees == sorted(fees)


class TestDescribe:
    def test_custom_text_wins(self):
        assert make_policy((3, 100), custom_text="No refunds.").describe() == "No refunds."

    def test_generated_longest_notice_first(self):
        text = make_policy((3, 100), (7, 50)).describe()
        lines = text.splitlines()

        assert "7日前から50%" in lines[1]
        assert "3日前から100%" in lines[2]
        assert lines[-1].endswith("全額返金されます。")


@pytest.mark.django_db
class TestPolicyResolver:
    def test_resolve_returns_sorted_snapshot(self, operator):
        CancellationPolicyFactory(
            operator=operator,
            tiers=[{"days": 3, "feePercentage": 100}, {"days": 7, "feePercentage": 50}],
        )

        policy = PolicyResolver().resolve(operator.pk)

        assert [t.days for t in policy.ascending()] == [3, 7]
        assert policy.operator_id == operator.pk

    def test_resolve_missing_raises(self, operator):
        with pytest.raises(PolicyNotFoundError) as exc_info:
            PolicyResolver().resolve(operator.pk)

        assert exc_info.value.error_code == "POLICY_MISSING"

    def test_resolve_invalid_raises_with_operator(self, operator):
        CancellationPolicyFactory(operator=operator, tiers=[{"days": "soon"}])

        with pytest.raises(PolicyInvalidError) as exc_info:
            PolicyResolver().resolve(operator.pk)

        assert exc_info.value.details["operator_id"] == str(operator.pk)

    def test_legacy_custom_text_is_read(self, operator):
        CancellationPolicyFactory(
            operator=operator,
            tiers={"policies": [{"days": 2, "feePercentage": 100}], "customText": "Legacy"},
        )

        assert PolicyResolver().resolve(operator.pk).describe() == "Legacy"

    def test_capture_date_uses_longest_tier(self, policy, operator):
        start = timezone.now() + timedelta(days=20)

        assert PolicyResolver().capture_date_for(operator.pk, start) == start - timedelta(days=7)

    @override_settings(DEFAULT_CAPTURE_LEAD_DAYS=7)
    def test_capture_date_falls_back_without_policy(self, operator):
        start = timezone.now() + timedelta(days=20)

        assert PolicyResolver().capture_date_for(operator.pk, start) == start - timedelta(days=7)

    @override_settings(DEFAULT_CAPTURE_LEAD_DAYS=5)
    def test_capture_date_falls_back_on_invalid_policy(self, operator):
        CancellationPolicyFactory(operator=operator, tiers=[])
        start = timezone.now() + timedelta(days=20)

        assert PolicyResolver().capture_date_for(operator.pk, start) == start - timedelta(days=5)
