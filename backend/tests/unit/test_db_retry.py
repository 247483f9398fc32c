"""Retry wrapper for transient database failures."""

import pytest
from sqlalchemy.exc import OperationalError

from tutor_scheduling import database
from tutor_scheduling.database import with_db_retry


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(database.time, "sleep", delays.append)
    return delays


def _locked():
    return OperationalError("UPDATE time_slots", {}, Exception("database is locked"))


def test_retries_transient_lock_then_succeeds(no_sleep):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        return "done"

    assert with_db_retry("flaky", flaky) == "done"
    assert len(calls) == 3
    assert len(no_sleep) == 2


def test_gives_up_after_max_attempts(no_sleep):
    def always_locked():
        raise _locked()

    with pytest.raises(OperationalError):
        with_db_retry("locked", always_locked, max_attempts=2)
    assert len(no_sleep) == 1


def test_non_transient_errors_are_not_retried(no_sleep):
    def broken():
        raise OperationalError("SELECT", {}, Exception("no such table: time_slots"))

    with pytest.raises(OperationalError):
        with_db_retry("broken", broken)
    assert no_sleep == []
