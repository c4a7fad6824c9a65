"""
Single write path for PaymentHold state changes.

Every status change on a hold, whichever actor triggers it, goes through
transition_hold():

    1. Re-read the hold with SELECT ... FOR UPDATE
    2. Refuse if its status is no longer the one the caller decided on
    3. Apply the django-fsm transition to the locked instance
    4. Persist with a compare-and-swap UPDATE on (status, version)

Callers that also talk to Stripe hold payments.locks.hold_lock around
"call Stripe, then transition_hold" so that two actors never race on the
same reservation.

Usage:
    from payments.services.hold_transitions import transition_hold

    hold = transition_hold(hold.id, HoldStatus.REQUIRES_CAPTURE, "capture")
    hold = transition_hold(
        hold.id,
        HoldStatus.SUCCEEDED,
        "refund",
        cancellation_fee=5000,
        refund_amount=5000,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from core.exceptions import NotFoundError
from payments.exceptions import InvalidStateTransitionError, StaleRecordError
from payments.models import TRANSITION_FIELDS, PaymentHold

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = frozenset({"capture", "cancel", "refund", "retain_fee"})


def transition_hold(
    hold_id: Any,
    expected_status: str,
    transition: str,
    **kwargs: Any,
) -> PaymentHold:
    """
    Move a hold from expected_status via the named transition.

    Args:
        hold_id: PaymentHold primary key
        expected_status: Status the caller observed when deciding to act
        transition: Name of a PaymentHold transition method
        **kwargs: Passed to the transition method

    Returns:
        The updated hold

    Raises:
        NotFoundError: If the hold does not exist
        StaleRecordError: If the hold moved since the caller read it
        InvalidStateTransitionError: If the transition is not allowed from
            expected_status
    """
    if transition not in ALLOWED_TRANSITIONS:
        raise ValueError(f"Unknown hold transition: {transition}")

    with transaction.atomic():
        hold = PaymentHold.objects.select_for_update().filter(pk=hold_id).first()
        if hold is None:
            raise NotFoundError(
                f"PaymentHold {hold_id} not found",
                error_code="HOLD_NOT_FOUND",
                details={"hold_id": str(hold_id)},
            )

        if hold.status != expected_status:
            raise StaleRecordError(
                f"PaymentHold {hold_id} is {hold.status}, expected {expected_status}",
                details={
                    "hold_id": str(hold_id),
                    "expected_status": str(expected_status),
                    "current_status": hold.status,
                },
            )

        try:
            getattr(hold, transition)(**kwargs)
        except TransitionNotAllowed as e:
            raise InvalidStateTransitionError(
                f"Cannot {transition} hold from '{hold.status}' state",
                details={
                    "hold_id": str(hold_id),
                    "current_state": hold.status,
                    "transition": transition,
                },
            ) from e

        values = {name: getattr(hold, name) for name in TRANSITION_FIELDS}
        rows = PaymentHold.objects.filter(
            pk=hold.pk,
            status=expected_status,
            version=hold.version,
        ).update(
            **values,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if rows != 1:
            raise StaleRecordError(
                f"PaymentHold {hold_id} was modified concurrently",
                details={"hold_id": str(hold_id), "expected_version": hold.version},
            )
        hold.version += 1

    logger.info(
        "Hold transitioned",
        extra={
            "hold_id": str(hold_id),
            "transition": transition,
            "from_status": str(expected_status),
            "to_status": hold.status,
            "version": hold.version,
        },
    )
    return hold
