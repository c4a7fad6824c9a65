"""
DRF serializers for payments app.

This module provides serializers for:
- Cancellation requests and settlement outcomes
- Operator cancellation policy display and replacement
- Payment hold display

Related files:
    - types.py: SettlementOutcome
    - policies.py: parse_tiers (tier validation)
    - views.py: Payment API views

Usage:
    serializer = CancelReservationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema_serializer
from rest_framework import serializers

from payments.exceptions import PolicyInvalidError
from payments.models import CancellationPolicy, PaymentHold
from payments.policies import OrderedPolicy, parse_tiers
from reservations.models import CancellationType


class CancelReservationSerializer(serializers.Serializer):
    """Request body for cancelling a reservation."""

    cancellation_type = serializers.ChoiceField(
        choices=CancellationType.choices,
        help_text="same_day_cancellation or advance_cancellation",
    )


@extend_schema_serializer(
    examples=[
        OpenApiExample(
            "Captured hold, partial refund",
            value={
                "reservation_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                "reservation_status": "cancelled",
                "days_until_reservation": 5,
                "fee_percentage": 50,
                "cancellation_fee": 5000,
                "refund_amount": 5000,
                "action": "refunded",
                "hold_id": "1b4e28ba-2fa1-11d2-883f-0016d3cca427",
                "hold_status": "refunded",
            },
            response_only=True,
        ),
    ]
)
class SettlementOutcomeSerializer(serializers.Serializer):
    """Read-only view of a SettlementOutcome."""

    reservation_id = serializers.UUIDField(read_only=True)
    reservation_status = serializers.CharField(read_only=True)
    days_until_reservation = serializers.IntegerField(read_only=True)
    fee_percentage = serializers.IntegerField(read_only=True)
    cancellation_fee = serializers.IntegerField(read_only=True)
    refund_amount = serializers.IntegerField(read_only=True)
    action = serializers.CharField(read_only=True)
    hold_id = serializers.UUIDField(read_only=True, allow_null=True)
    hold_status = serializers.CharField(read_only=True, allow_null=True)


class CancellationPolicySerializer(serializers.ModelSerializer):
    """
    Operator cancellation policy.

    On write, tiers are validated with the same rules settlement applies
    and stored sorted by days, so a policy that saves is a policy that
    resolves.
    """

    tiers = serializers.JSONField(
        help_text='List of {"days": int, "feePercentage": int} tiers',
    )
    description = serializers.SerializerMethodField(
        help_text="Customer-facing policy text",
    )

    class Meta:
        """Serializer metadata."""

        model = CancellationPolicy
        fields = ["tiers", "custom_text", "description", "updated_at"]
        read_only_fields = ["description", "updated_at"]

    def validate_tiers(self, value) -> list[dict]:
        try:
            tiers = parse_tiers(value)
        except PolicyInvalidError as e:
            raise serializers.ValidationError(e.message) from e
        return [tier.to_dict() for tier in tiers]

    def get_description(self, obj: CancellationPolicy) -> str:
        try:
            tiers = parse_tiers(obj.tiers)
        except PolicyInvalidError:
            return obj.custom_text
        return OrderedPolicy(
            operator_id=obj.operator_id,
            tiers=tiers,
            custom_text=obj.custom_text,
        ).describe()

    def create(self, validated_data: dict) -> CancellationPolicy:
        operator = self.context["request"].user
        policy, _ = CancellationPolicy.objects.update_or_create(
            operator=operator,
            defaults=validated_data,
        )
        return policy


class PaymentHoldSerializer(serializers.ModelSerializer):
    """Read-only serializer for PaymentHold."""

    class Meta:
        """Serializer metadata."""

        model = PaymentHold
        fields = [
            "id",
            "reservation",
            "stripe_payment_intent_id",
            "amount",
            "currency",
            "status",
            "capture_date",
            "cancellation_fee",
            "refund_amount",
            "captured_at",
            "canceled_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
