"""
DRF views for payments app.

This module provides API views for:
- Reservation cancellation with payment settlement
- Operator cancellation policy management
- On-demand capture of a hold

Related files:
    - services/: CancellationSettlement, CaptureScheduler
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/reservations/{id}/cancel/ - Cancel and settle
    GET  /api/v1/payments/cancellation-policy/      - Get operator policy
    PUT  /api/v1/payments/cancellation-policy/      - Replace operator policy
    POST /api/v1/payments/holds/{id}/capture/       - Capture a hold now

Security:
    - All endpoints require authentication
    - Operators only see and act on their own reservations and holds
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import ConflictError, NotFoundError
from core.services import ServiceResult
from payments.exceptions import (
    GatewayAccountMissingError,
    PolicyError,
    ReservationNotFoundError,
    StoreWriteFailedError,
    StripeError,
)
from payments.models import CancellationPolicy, PaymentHold
from payments.serializers import (
    CancellationPolicySerializer,
    CancelReservationSerializer,
    PaymentHoldSerializer,
    SettlementOutcomeSerializer,
)
from payments.services import CancellationSettlement, CaptureScheduler
from reservations.models import Reservation

logger = logging.getLogger(__name__)


def failure_status(result: ServiceResult) -> int:
    """Map a failed ServiceResult to an HTTP status code."""
    exc = result.exception
    if isinstance(exc, (ReservationNotFoundError, NotFoundError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (PolicyError, GatewayAccountMissingError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, StripeError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, StoreWriteFailedError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


def failure_response(result: ServiceResult) -> Response:
    return Response(
        {"error": result.error, "error_code": result.error_code},
        status=failure_status(result),
    )


class CancelReservationView(APIView):
    """
    Cancel a reservation and settle its payment.

    POST /api/v1/payments/reservations/{reservation_id}/cancel/

    Request body:
        {"cancellation_type": "advance_cancellation"}

    Response:
        200 OK: Settlement outcome
        404 Not Found: Reservation does not exist or is not the operator's
        409 Conflict: Reservation no longer confirmed, or the hold is being
            moved by another process
        422 Unprocessable Entity: Policy missing/invalid or no connected account
        502 Bad Gateway: Stripe refused the cancel or refund
        500 Internal Server Error: Money moved but the local write failed
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="cancel_reservation",
        summary="Cancel a reservation",
        description=(
            "Apply the operator's cancellation policy, cancel or refund the "
            "payment hold, then mark the reservation cancelled."
        ),
        request=CancelReservationSerializer,
        responses={
            200: OpenApiResponse(response=SettlementOutcomeSerializer, description="Settled"),
            404: OpenApiResponse(description="Reservation not found"),
            409: OpenApiResponse(description="Reservation not confirmed, or hold locked"),
            422: OpenApiResponse(description="Policy missing/invalid or no connected account"),
            502: OpenApiResponse(description="Stripe error"),
            500: OpenApiResponse(description="Store write failed after Stripe succeeded"),
        },
        tags=["Payments - Cancellation"],
    )
    def post(self, request, reservation_id):
        serializer = CancelReservationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        if not Reservation.objects.filter(pk=reservation_id, operator=request.user).exists():
            return Response(
                {"error": "Reservation not found", "error_code": "RESERVATION_NOT_FOUND"},
                status=status.HTTP_404_NOT_FOUND,
            )

        result = CancellationSettlement().settle(
            reservation_id,
            serializer.validated_data["cancellation_type"],
        )
        if not result.success:
            return failure_response(result)

        return Response(SettlementOutcomeSerializer(result.data).data)


class CancellationPolicyView(APIView):
    """
    Read or replace the authenticated operator's cancellation policy.

    GET /api/v1/payments/cancellation-policy/
    PUT /api/v1/payments/cancellation-policy/

    Request body (PUT):
        {
            "tiers": [{"days": 7, "feePercentage": 50}, {"days": 3, "feePercentage": 100}],
            "custom_text": ""
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_cancellation_policy",
        summary="Get cancellation policy",
        responses={
            200: CancellationPolicySerializer,
            404: OpenApiResponse(description="No policy configured"),
        },
        tags=["Payments - Policy"],
    )
    def get(self, request):
        policy = CancellationPolicy.objects.filter(operator=request.user).first()
        if policy is None:
            return Response(
                {"error": "No cancellation policy configured", "error_code": "POLICY_MISSING"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CancellationPolicySerializer(policy).data)

    @extend_schema(
        operation_id="replace_cancellation_policy",
        summary="Replace cancellation policy",
        description=(
            "Validate and store the operator's tiers. Existing holds keep the "
            "capture date fixed when they were authorized."
        ),
        request=CancellationPolicySerializer,
        responses={
            200: CancellationPolicySerializer,
            400: OpenApiResponse(description="Invalid tiers"),
        },
        tags=["Payments - Policy"],
    )
    def put(self, request):
        serializer = CancellationPolicySerializer(
            data=request.data,
            context={"request": request},
        )
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        policy = serializer.save()
        logger.info(
            "Cancellation policy replaced",
            extra={"operator_id": str(request.user.pk), "tiers": policy.tiers},
        )
        return Response(CancellationPolicySerializer(policy).data)


class CaptureHoldView(APIView):
    """
    Capture one of the operator's holds immediately.

    POST /api/v1/payments/holds/{hold_id}/capture/

    Response:
        200 OK: Updated hold
        404 Not Found: Hold does not exist or is not the operator's
        409 Conflict: Hold is not awaiting capture or is locked
        502 Bad Gateway: Stripe refused the capture
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="capture_hold",
        summary="Capture a hold now",
        request=None,
        responses={
            200: PaymentHoldSerializer,
            404: OpenApiResponse(description="Hold not found"),
            409: OpenApiResponse(description="Hold not capturable"),
            502: OpenApiResponse(description="Stripe error"),
        },
        tags=["Payments - Holds"],
    )
    def post(self, request, hold_id):
        if not PaymentHold.objects.filter(pk=hold_id, operator=request.user).exists():
            return Response(
                {"error": "Hold not found", "error_code": "HOLD_NOT_FOUND"},
                status=status.HTTP_404_NOT_FOUND,
            )

        result = CaptureScheduler().capture_hold(hold_id)
        if not result.success:
            return failure_response(result)

        return Response(PaymentHoldSerializer(result.data).data)
