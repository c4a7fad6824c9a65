"""
Payment admin configuration.

Registers the deferred-payment models with the Django admin. Holds and
profiles are driven by the schedulers and settlement, so their status is
read-only here.
"""

from django.contrib import admin

from payments.models import CancellationPolicy, ConnectedAccount, PaymentHold, PaymentProfile

__all__ = [
    "CancellationPolicyAdmin",
    "ConnectedAccountAdmin",
    "PaymentHoldAdmin",
    "PaymentProfileAdmin",
]


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for ConnectedAccount.

    Provides visibility into which operators can take charges.
    """

    list_display = ["id", "operator", "stripe_account_id", "charges_enabled", "created_at"]
    list_filter = ["charges_enabled"]
    search_fields = ["stripe_account_id", "operator__email", "operator__username"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(CancellationPolicy)
class CancellationPolicyAdmin(admin.ModelAdmin):
    list_display = ["id", "operator", "updated_at"]
    search_fields = ["operator__email", "operator__username"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(PaymentProfile)
class PaymentProfileAdmin(admin.ModelAdmin):
    list_display = ["id", "reservation", "status", "customer_email", "created_at"]
    list_filter = ["status"]
    search_fields = ["reservation__id", "stripe_customer_id", "customer_email"]
    readonly_fields = ["id", "status", "created_at", "updated_at"]


@admin.register(PaymentHold)
class PaymentHoldAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentHold.

    Holds are created by the authorization scheduler and should not be
    manually modified through admin.
    """

    list_display = [
        "id",
        "reservation",
        "amount_display",
        "status",
        "capture_date",
        "captured_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "capture_date"]
    search_fields = ["id", "reservation__id", "stripe_payment_intent_id"]
    readonly_fields = [
        "id",
        "status",
        "created_at",
        "updated_at",
        "version",
        "captured_at",
        "canceled_at",
        "refunded_at",
    ]
    ordering = ["capture_date"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "reservation", "operator", "stripe_payment_intent_id"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency"),
            },
        ),
        (
            "Hold Status",
            {
                "fields": (
                    "status",
                    "capture_date",
                    "captured_at",
                    "canceled_at",
                    "refunded_at",
                ),
            },
        ),
        (
            "Settlement",
            {
                "fields": ("cancellation_fee", "refund_amount"),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def amount_display(self, obj: PaymentHold) -> str:
        """Display the amount with its currency."""
        return f"{obj.amount:,} {obj.currency.upper()}"

    amount_display.short_description = "Amount"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for holds (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding holds through admin."""
        return False
