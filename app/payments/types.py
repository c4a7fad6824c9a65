"""
Data types shared by the payment schedulers, settlement and API layer.

Types:
    ItemFailure: One candidate that failed during a scheduler run
    BatchSummary: Outcome counts of a scheduler run
    SettlementOutcome: What a cancellation settlement did

Usage:
    summary = BatchSummary()
    summary.considered += 1
    summary.record_failure(hold.id, error)
    return summary.to_dict()
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class ItemFailure:
    """A single failed candidate, kept for the run log and task result."""

    item_id: str
    error_code: str
    message: str


@dataclass
class BatchSummary:
    """
    Counts for one authorization, capture or reconciliation run.

    considered = succeeded + skipped + len(failures)
    """

    considered: int = 0
    succeeded: int = 0
    skipped: int = 0
    failures: list[ItemFailure] = field(default_factory=list)

    def record_failure(self, item_id: Any, error: Exception) -> None:
        self.failures.append(
            ItemFailure(
                item_id=str(item_id),
                error_code=getattr(error, "error_code", type(error).__name__.upper()),
                message=getattr(error, "message", None) or str(error),
            )
        )

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form, used as the Celery task result."""
        data = asdict(self)
        data["failed"] = self.failed
        return data


@dataclass
class SettlementOutcome:
    """
    Result of settling one cancellation.

    Attributes:
        reservation_id: Reservation that was cancelled
        reservation_status: Status written to the reservation
        days_until_reservation: Whole days from cancellation to start
        fee_percentage: Percentage taken from the applicable tier
        cancellation_fee: Amount the operator keeps
        refund_amount: Amount returned to the customer
        hold_id: Settled hold, if there was one
        hold_status: Hold status after settlement (None without a hold)
        action: "authorization_canceled", "refunded", "fee_retained",
            "already_settled" or "no_hold"
    """

    reservation_id: str
    reservation_status: str
    days_until_reservation: int
    fee_percentage: int
    cancellation_fee: int
    refund_amount: int
    action: str
    hold_id: str | None = None
    hold_status: str | None = None
