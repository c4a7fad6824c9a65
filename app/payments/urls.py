"""
URL configuration for the payments app.

Routes:
    - POST reservations/<uuid>/cancel/ - Cancel a reservation and settle its hold
    - GET|PUT cancellation-policy/     - Operator cancellation policy
    - POST holds/<uuid>/capture/       - Capture a hold immediately

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import CancellationPolicyView, CancelReservationView, CaptureHoldView

app_name = "payments"

urlpatterns = [
    path(
        "reservations/<uuid:reservation_id>/cancel/",
        CancelReservationView.as_view(),
        name="cancel_reservation",
    ),
    path(
        "cancellation-policy/",
        CancellationPolicyView.as_view(),
        name="cancellation_policy",
    ),
    path(
        "holds/<uuid:hold_id>/capture/",
        CaptureHoldView.as_view(),
        name="capture_hold",
    ),
]
