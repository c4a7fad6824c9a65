"""
URL configuration for the salon payment service.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                                        - ReDoc API documentation
    /schema/                                 - OpenAPI schema
    /admin/                                  - Django admin interface
    /api/v1/payments/                        - Payment endpoints
        reservations/{id}/cancel/            - Cancel a reservation and settle its hold
        cancellation-policy/                 - Read/replace the operator's policy
        holds/{id}/capture/                  - Capture one hold immediately

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]
