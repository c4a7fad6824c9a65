"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (missing policy, gateway decline)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class SettlementService(BaseService):
        def settle(self, reservation_id) -> ServiceResult[Outcome]:
            try:
                outcome = self._settle(reservation_id)
            except BaseApplicationError as e:
                return self.handle_exception(e, "Settlement")
            return ServiceResult.ok(outcome)

    # In view
    result = service.settle(reservation_id)
    if result.success:
        return Response(OutcomeSerializer(result.data).data)
    return Response({"error": result.error, "error_code": result.error_code}, status=409)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        exception: The exception that caused the failure, when there was one

    Usage:
        return ServiceResult.ok(outcome)
        return ServiceResult.failure("No cancellation policy", "POLICY_MISSING")

        result = service.settle(reservation_id)
        if result.success:
            outcome = result.data
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    exception: Exception | None = field(default=None, repr=False, compare=False)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        exception: Exception | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            exception: Originating exception, kept for callers that need
                to map the failure to a transport status
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            exception=exception,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message and error code; anything
        else is reported under the exception's class name.
        """
        message = getattr(exc, "message", None) or str(exc)
        code = error_code or getattr(exc, "error_code", None) or exc.__class__.__name__.upper()
        return cls(success=False, error=message, error_code=code, exception=exc)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Exception to ServiceResult conversion
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Example:
            try:
                gateway.cancel_payment_intent(...)
            except StripeError as e:
                return self.handle_exception(e, "cancellation settlement")
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=log_level >= logging.ERROR)
        return ServiceResult.from_exception(exc)
