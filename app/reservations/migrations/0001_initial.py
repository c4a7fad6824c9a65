import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Reservation",
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
                    "total_price",
                    models.PositiveBigIntegerField(
                        help_text="Reservation price in minor currency units",
                    ),
                ),
                (
                    "start_time",
                    models.DateTimeField(
                        db_index=True,
                        help_text="When the appointment starts",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("same_day_cancelled", "Same-day cancelled"),
                            ("salon_cancelled", "Cancelled by salon"),
                            ("no_show", "No show"),
                            ("paid", "Paid"),
                        ],
                        db_index=True,
                        default="confirmed",
                        help_text="Current booking status",
                        max_length=32,
                    ),
                ),
                (
                    "operator",
                    models.ForeignKey(
                        help_text="Operator (salon owner) the reservation belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation",
                "verbose_name_plural": "Reservations",
                "ordering": ["start_time"],
                "indexes": [
                    models.Index(
                        fields=["status", "start_time"],
                        name="reservation_status_start_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("total_price__gt", 0)),
                        name="reservation_total_price_positive",
                    ),
                ],
            },
        ),
    ]
