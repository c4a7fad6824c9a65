"""
Cancellation policy resolution and fee arithmetic.

An operator's policy is a list of tiers, each saying "cancelling this many
days (or fewer) before the appointment costs this percentage". The same
ordered view of the tiers drives both the capture date of new holds and
the fee charged on cancellation.

Usage:
    from payments.policies import PolicyResolver, compute_fee, days_until

    resolver = PolicyResolver()
    policy = resolver.resolve(operator_id)

    days = days_until(reservation.start_time, now)
    breakdown = compute_fee(reservation.total_price, policy.fee_percentage_for(days))

    capture_date = resolver.capture_date_for(operator_id, reservation.start_time)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings

from payments.exceptions import PolicyInvalidError, PolicyNotFoundError
from payments.models import CancellationPolicy

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class PolicyTier:
    """One threshold of a cancellation policy."""

    days: int
    fee_percentage: int

    def to_dict(self) -> dict[str, int]:
        return {"days": self.days, "feePercentage": self.fee_percentage}


@dataclass(frozen=True)
class FeeBreakdown:
    """
    Result of applying a fee percentage to a reservation price.

    cancellation_fee + refund_amount always equals the total price.
    """

    fee_percentage: int
    cancellation_fee: int
    refund_amount: int


@dataclass(frozen=True)
class OrderedPolicy:
    """
    Immutable snapshot of an operator's validated policy.

    Tiers are stored ascending by days. Duplicate thresholds keep the
    first occurrence in the stored order.
    """

    operator_id: Any
    tiers: tuple[PolicyTier, ...]
    custom_text: str = ""

    def ascending(self) -> tuple[PolicyTier, ...]:
        return self.tiers

    def descending(self) -> tuple[PolicyTier, ...]:
        return tuple(reversed(self.tiers))

    @property
    def max_days(self) -> int:
        return self.tiers[-1].days

    def applicable_tier(self, days_until_reservation: int) -> PolicyTier | None:
        """
        Return the tier that applies at days_until_reservation, if any.

        The applicable tier is the one with the smallest threshold at or
        beyond the cancellation point, so a last-minute cancellation lands
        on the strictest tier and a cancellation earlier than every
        threshold matches nothing.
        """
        for tier in self.ascending():
            if days_until_reservation <= tier.days:
                return tier
        return None

    def fee_percentage_for(self, days_until_reservation: int) -> int:
        tier = self.applicable_tier(days_until_reservation)
        return tier.fee_percentage if tier else 0

    def describe(self) -> str:
        """
        Customer-facing policy text.

        The operator's custom text wins when set; otherwise a summary is
        generated from the tiers, longest notice first.
        """
        if self.custom_text.strip():
            return self.custom_text

        lines = ["キャンセルポリシー:"]
        for index, tier in enumerate(self.descending()):
            suffix = "が発生します。" if index == 0 else "となります。"
            lines.append(
                f"・予約日の{tier.days}日前から{tier.fee_percentage}%のキャンセル料{suffix}"
            )
        lines.append("・上記以前のキャンセルは全額返金されます。")
        return "\n".join(lines)


def _as_int(value: Any) -> int | None:
    """Accept ints and integral numbers/strings; reject bools and fractions."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def parse_tiers(raw: Any) -> tuple[PolicyTier, ...]:
    """
    Validate raw policy JSON and return tiers sorted ascending by days.

    Accepts either a list of tier objects or the legacy envelope
    {"policies": [...], "customText": "..."}.

    Raises:
        PolicyInvalidError: If the tiers are missing, empty or malformed
    """
    if isinstance(raw, dict):
        raw = raw.get("policies")

    if not isinstance(raw, list) or not raw:
        raise PolicyInvalidError(
            "Cancellation policy must be a non-empty list of tiers",
            details={"reason": "empty_or_not_a_list"},
        )

    tiers: list[PolicyTier] = []
    seen_days: set[int] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise PolicyInvalidError(
                f"Tier {index} is not an object",
                details={"index": index},
            )

        days = _as_int(entry.get("days"))
        fee_percentage = _as_int(entry.get("feePercentage", entry.get("fee_percentage")))

        if days is None or days < 0:
            raise PolicyInvalidError(
                f"Tier {index} has an invalid days value",
                details={"index": index, "days": entry.get("days")},
            )
        if fee_percentage is None or not 0 <= fee_percentage <= 100:
            raise PolicyInvalidError(
                f"Tier {index} has an invalid fee percentage",
                details={"index": index, "feePercentage": entry.get("feePercentage")},
            )

        if days in seen_days:
            logger.warning(
                "Duplicate cancellation tier ignored",
                extra={"index": index, "days": days},
            )
            continue
        seen_days.add(days)
        tiers.append(PolicyTier(days=days, fee_percentage=fee_percentage))

    return tuple(sorted(tiers, key=lambda tier: tier.days))


def days_until(start_time: datetime, now: datetime) -> int:
    """
    Whole days from now until start_time, rounded up, never negative.

    A cancellation 4 days and 1 hour out counts as 5 days; anything at or
    after the start time counts as 0.
    """
    seconds = (start_time - now).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


def compute_fee(total_price: int, fee_percentage: int) -> FeeBreakdown:
    """
    Split total_price into the retained fee and the refund.

    The fee is rounded down to a whole minor unit; the refund takes the
    remainder so the two always add up to total_price.
    """
    cancellation_fee = total_price * fee_percentage // 100
    return FeeBreakdown(
        fee_percentage=fee_percentage,
        cancellation_fee=cancellation_fee,
        refund_amount=total_price - cancellation_fee,
    )


class PolicyResolver:
    """
    Loads and validates operator cancellation policies.

    Each call reads the current row, so the returned OrderedPolicy is a
    snapshot: edits saved afterwards do not affect a settlement or
    authorization already in progress.
    """

    def resolve(self, operator_id: Any) -> OrderedPolicy:
        """
        Raises:
            PolicyNotFoundError: If the operator has no policy row
            PolicyInvalidError: If the stored tiers are malformed
        """
        policy = CancellationPolicy.objects.filter(operator_id=operator_id).first()
        if policy is None:
            raise PolicyNotFoundError(
                f"Operator {operator_id} has no cancellation policy",
                details={"operator_id": str(operator_id)},
            )

        try:
            tiers = parse_tiers(policy.tiers)
        except PolicyInvalidError as e:
            e.details["operator_id"] = str(operator_id)
            raise

        custom_text = policy.custom_text
        if not custom_text and isinstance(policy.tiers, dict):
            custom_text = policy.tiers.get("customText") or ""

        return OrderedPolicy(operator_id=operator_id, tiers=tiers, custom_text=custom_text)

    def capture_date_for(self, operator_id: Any, start_time: datetime) -> datetime:
        """
        Capture date for a new hold: start_time minus the longest tier.

        Falls back to DEFAULT_CAPTURE_LEAD_DAYS when the operator has no
        usable policy, so authorization is never blocked by one.
        """
        try:
            lead_days = self.resolve(operator_id).max_days
        except (PolicyNotFoundError, PolicyInvalidError) as e:
            lead_days = settings.DEFAULT_CAPTURE_LEAD_DAYS
            logger.warning(
                "No usable cancellation policy, using default capture lead time",
                extra={
                    "operator_id": str(operator_id),
                    "error_code": e.error_code,
                    "lead_days": lead_days,
                },
            )
        return start_time - timedelta(days=lead_days)
