import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("reservations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CancellationPolicy",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "tiers",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text='Fee tiers, e.g. [{"days": 7, "feePercentage": 50}]',
                    ),
                ),
                (
                    "custom_text",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Additional policy wording shown to customers",
                    ),
                ),
                (
                    "operator",
                    models.OneToOneField(
                        help_text="Operator this policy belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cancellation_policy",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Cancellation Policy",
                "verbose_name_plural": "Cancellation Policies",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ConnectedAccount",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_account_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "charges_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled charges for this account",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata (e.g., business type, country)",
                    ),
                ),
                (
                    "operator",
                    models.OneToOneField(
                        help_text="Operator this connected account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="connected_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Connected Account",
                "verbose_name_plural": "Connected Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentProfile",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_customer_id",
                    models.CharField(
                        help_text="Stripe Customer ID (cus_xxx) on the operator's account",
                        max_length=255,
                    ),
                ),
                (
                    "stripe_payment_method_id",
                    models.CharField(
                        help_text="Stripe PaymentMethod ID (pm_xxx) to charge off-session",
                        max_length=255,
                    ),
                ),
                (
                    "customer_email",
                    models.EmailField(
                        blank=True,
                        default="",
                        help_text="Receipt email for the customer",
                        max_length=254,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("request", "Authorization requested"),
                            ("requires_capture", "Authorized"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="request",
                        help_text="Authorization state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "reservation",
                    models.OneToOneField(
                        help_text="Reservation this card was saved for",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_profile",
                        to="reservations.reservation",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Profile",
                "verbose_name_plural": "Payment Profiles",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentHold",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "amount",
                    models.PositiveBigIntegerField(
                        help_text="Authorized amount in minor currency units",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="jpy",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("requires_capture", "Requires capture"),
                            ("succeeded", "Captured"),
                            ("canceled", "Canceled"),
                            ("refunded", "Refunded"),
                            ("cancellation_fee_charged", "Cancellation fee charged"),
                        ],
                        db_index=True,
                        default="requires_capture",
                        help_text="Current state of the hold (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "capture_date",
                    models.DateTimeField(
                        db_index=True,
                        help_text="When the hold becomes due for capture",
                    ),
                ),
                (
                    "cancellation_fee",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Fee retained on cancellation (minor units)",
                        null=True,
                    ),
                ),
                (
                    "refund_amount",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Amount returned to the customer on cancellation (minor units)",
                        null=True,
                    ),
                ),
                ("captured_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each transition",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata (e.g., Stripe refund id)",
                    ),
                ),
                (
                    "operator",
                    models.ForeignKey(
                        help_text="Operator whose connected account holds the PaymentIntent",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_holds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reservation",
                    models.OneToOneField(
                        help_text="Reservation this hold pays for",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_hold",
                        to="reservations.reservation",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Hold",
                "verbose_name_plural": "Payment Holds",
                "ordering": ["capture_date"],
                "indexes": [
                    models.Index(
                        fields=["status", "capture_date"],
                        name="hold_status_capture_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payment_hold_amount_positive",
                    ),
                ],
            },
        ),
    ]
