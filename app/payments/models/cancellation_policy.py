"""
CancellationPolicy model.

One row per operator. `tiers` is the raw JSON the operator saved; it is
only ever read through payments.policies, which validates it.

Example tiers:
    [
        {"days": 7, "feePercentage": 50},
        {"days": 3, "feePercentage": 100},
    ]

Cancelling 3 days or less before the appointment costs 100%, 4 to 7 days
costs 50%, earlier than that is free.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class CancellationPolicy(BaseModel):
    """
    Tiered cancellation-fee policy for an operator.

    Fields:
        operator: Operator this policy belongs to
        tiers: JSON list of {"days", "feePercentage"} objects
        custom_text: Free text shown to customers alongside the tiers
    """

    operator = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cancellation_policy",
        help_text="Operator this policy belongs to",
    )

    tiers = models.JSONField(
        default=list,
        blank=True,
        help_text='Fee tiers, e.g. [{"days": 7, "feePercentage": 50}]',
    )

    custom_text = models.TextField(
        blank=True,
        default="",
        help_text="Additional policy wording shown to customers",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Cancellation Policy"
        verbose_name_plural = "Cancellation Policies"

    def __str__(self) -> str:
        return f"CancellationPolicy(operator={self.operator_id}, tiers={len(self.tiers or [])})"
