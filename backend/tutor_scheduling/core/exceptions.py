# backend/tutor_scheduling/core/exceptions.py
"""
Domain-specific exceptions for the scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Scheduling exceptions


def _slot_details(tutor_id: str, slot_date: date, hour: int) -> Dict[str, Any]:
    return {"tutor_id": tutor_id, "date": slot_date.isoformat(), "hour": hour}


class InvalidHourError(ValidationException):
    """Raised when an hour is outside the bookable set (8-17, never 12)."""

    def __init__(self, hour: Any):
        super().__init__(
            message=f"Hour {hour} is not a bookable hour",
            code="INVALID_HOUR",
            details={"hour": hour},
        )


class PastDateError(ValidationException):
    """Raised when mutating a slot whose start time is not in the future."""

    def __init__(self, tutor_id: str, slot_date: date, hour: int):
        super().__init__(
            message=f"Cannot change a slot in the past ({slot_date.isoformat()} {hour:02d}:00)",
            code="PAST_DATE",
            details=_slot_details(tutor_id, slot_date, hour),
        )


class InvalidSlotError(ValidationException):
    """Raised when a booking request targets a slot that can never be booked."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_SLOT", details=details or {})


class EmptySourceError(ValidationException):
    """Raised when copying from a date that has no available hours."""

    def __init__(self, tutor_id: str, source_date: date):
        super().__init__(
            message=f"No available hours on {source_date.isoformat()} to copy",
            code="EMPTY_SOURCE",
            details={"tutor_id": tutor_id, "source_date": source_date.isoformat()},
        )


class NotFoundError(NotFoundException):
    """Raised when a slot or booking does not exist."""


class SlotUnavailableError(ConflictException):
    """Raised when a claim loses: the slot is no longer AVAILABLE."""

    def __init__(self, tutor_id: str, slot_date: date, hour: int, message: Optional[str] = None):
        super().__init__(
            message=message or "This time was just taken, please choose another",
            code="SLOT_UNAVAILABLE",
            details=_slot_details(tutor_id, slot_date, hour),
        )


class SlotBookedError(ConflictException):
    """Raised when removing or toggling a slot held by a booking."""

    def __init__(self, tutor_id: str, slot_date: date, hour: int):
        super().__init__(
            message="This slot is held by a booking and cannot be changed",
            code="SLOT_BOOKED",
            details=_slot_details(tutor_id, slot_date, hour),
        )


class TooEarlyError(BusinessRuleException):
    """Raised when completing a booking before its slot has started."""

    def __init__(self, booking_id: str, starts_at: str):
        super().__init__(
            message="Cannot complete a booking before the lesson has started",
            code="TOO_EARLY",
            details={"booking_id": booking_id, "starts_at": starts_at},
        )


class InvalidTransitionError(BusinessRuleException):
    """Raised when a status transition is not legal from the current status."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_TRANSITION", details=details or {})


class AuthorizationError(ForbiddenException):
    """Raised when the actor does not own the booking or slot."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message=message, code="ACCESS_DENIED")

    def to_http_exception(self) -> HTTPException:
        # Never leak ownership details to the caller
        return HTTPException(
            status_code=self.status_code,
            detail={"message": "Access denied", "code": self.code, "details": {}},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
