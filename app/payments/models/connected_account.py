"""
ConnectedAccount model for Stripe Connect integration.

Each operator (salon owner) charges customers through their own Stripe
Connect account. Every PaymentIntent call is scoped to it with the
`stripe_account` request option.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.objects.for_operator(operator_id)
    if account is None:
        raise GatewayAccountMissingError(...)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class ConnectedAccountManager(models.Manager):
    def for_operator(self, operator_id) -> ConnectedAccount | None:
        """Return the operator's account if it can take charges, else None."""
        return self.filter(operator_id=operator_id, charges_enabled=True).first()


class ConnectedAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    An operator's Stripe Connect account.

    Fields:
        operator: OneToOne link to the operator user
        stripe_account_id: Unique Stripe Account ID (acct_xxx)
        charges_enabled: Whether Stripe has enabled charges for this account
        metadata: Flexible JSON storage for additional data

    Note:
        The operator field uses PROTECT so an operator with payment
        history cannot be deleted by accident.
    """

    operator = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Operator this connected account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata (e.g., business type, country)",
    )

    objects = ConnectedAccountManager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, charges_enabled={self.charges_enabled})"
