# backend/tests/conftest.py
"""
Pytest configuration for the scheduling engine.

Every test gets its own file-backed SQLite database so that tests using
several sessions (compensation, concurrent claims, audit writes) see real
cross-session behavior. Time is pinned with a FrozenClock.
"""

import os
import sys

# Set testing mode BEFORE any package imports
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CI", "true")

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import sessionmaker

from tests.utils.scheduling_builders import NOW
from tutor_scheduling.api.dependencies import get_catalog, get_clock, get_db
from tutor_scheduling.core.clock import FrozenClock
from tutor_scheduling.database import create_scheduling_engine, init_db
from tutor_scheduling.events import SchedulingEvents
from tutor_scheduling.integrations.session_catalog import default_catalog
from tutor_scheduling.main import create_app
from tutor_scheduling.services.audit_service import AuditService, SlotAuditRecorder
from tutor_scheduling.services.scheduling_service import SchedulingService
from tutor_scheduling.services.slot_store import SlotStore
from tutor_scheduling.services.weekly_template_service import WeeklyTemplateService


@pytest.fixture
def engine(tmp_path):
    """Fresh database per test."""
    test_engine = create_scheduling_engine(f"sqlite:///{tmp_path / 'scheduling.db'}")
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def _isolate_event_listeners():
    """Listeners are process-global; restore the registry after each test."""
    saved = list(SchedulingEvents._listeners)
    yield
    SchedulingEvents._listeners = saved


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def slot_store(db, clock):
    return SlotStore(db, clock)


@pytest.fixture
def template_service(db, clock, slot_store):
    return WeeklyTemplateService(db, clock, slot_store=slot_store)


@pytest.fixture
def scheduling_service(db, clock, catalog, slot_store, session_factory):
    return SchedulingService(
        db,
        clock,
        catalog=catalog,
        slot_store=slot_store,
        session_factory=session_factory,
        sleep=lambda _seconds: None,
    )


@pytest.fixture
def audit_recorder(session_factory):
    recorder = SlotAuditRecorder(session_factory=session_factory, enabled=True).install()
    yield recorder
    recorder.uninstall()


@pytest.fixture
def audit_service(db, clock):
    return AuditService(db, clock)


@pytest.fixture
def client(session_factory, clock, catalog):
    """TestClient wired to the per-test database and frozen clock."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app = create_app(
        audit_recorder=SlotAuditRecorder(session_factory=session_factory, enabled=True),
        init_schema=False,
    )
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_catalog] = lambda: catalog

    with TestClient(app) as test_client:
        yield test_client
