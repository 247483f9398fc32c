from datetime import date

import pytest

from tutor_scheduling.core.exceptions import (
    AuthorizationError,
    EmptySourceError,
    InvalidHourError,
    InvalidSlotError,
    InvalidTransitionError,
    NotFoundError,
    PastDateError,
    ServiceException,
    SlotBookedError,
    SlotUnavailableError,
    TooEarlyError,
)

DAY = date(2025, 6, 9)


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (InvalidHourError(12), 400, "INVALID_HOUR"),
        (PastDateError("t1", DAY, 9), 400, "PAST_DATE"),
        (InvalidSlotError("nope"), 400, "INVALID_SLOT"),
        (EmptySourceError("t1", DAY), 400, "EMPTY_SOURCE"),
        (NotFoundError("missing", code="BOOKING_NOT_FOUND"), 404, "BOOKING_NOT_FOUND"),
        (SlotUnavailableError("t1", DAY, 9), 409, "SLOT_UNAVAILABLE"),
        (SlotBookedError("t1", DAY, 9), 409, "SLOT_BOOKED"),
        (TooEarlyError("b1", "2025-06-09T07:00:00+00:00"), 422, "TOO_EARLY"),
        (InvalidTransitionError("bad"), 422, "INVALID_TRANSITION"),
        (AuthorizationError(), 403, "ACCESS_DENIED"),
    ],
)
def test_http_mapping(exc, status_code, code):
    http_exc = exc.to_http_exception()
    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code


def test_slot_unavailable_has_retry_message():
    exc = SlotUnavailableError("t1", DAY, 9)
    assert exc.message == "This time was just taken, please choose another"
    assert exc.details == {"tutor_id": "t1", "date": "2025-06-09", "hour": 9}


def test_authorization_error_hides_details():
    exc = AuthorizationError("Only the booked tutor can do this")
    detail = exc.to_http_exception().detail
    assert detail["message"] == "Access denied"
    assert detail["details"] == {}


def test_service_exception_is_500():
    assert ServiceException("boom").to_http_exception().status_code == 500
