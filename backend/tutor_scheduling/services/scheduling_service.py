# backend/tutor_scheduling/services/scheduling_service.py
"""
Scheduling Service for the scheduling engine.

Orchestrates the booking lifecycle on top of SlotStore:

    PENDING -> CONFIRMED -> COMPLETED
    PENDING -> CANCELLED
    CONFIRMED -> CANCELLED

Booking a slot is two-phase. The slot claim commits first and is the only
exclusivity checkpoint; the booking row is then written in its own
transaction. If that write fails, the claim is undone by a compensating
release that is retried with backoff. Anything the compensation cannot
free is picked up by the periodic reconciliation job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
import time
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.clock import Clock
from ..core.config import settings
from ..core.constants import ALLOWED_HOURS, DEFAULT_QUERY_LIMIT, UPCOMING_WINDOW_DAYS
from ..core.enums import AuditReason, BookingStatus, SlotStatus
from ..core.exceptions import (
    AuthorizationError,
    InvalidSlotError,
    InvalidTransitionError,
    NotFoundError,
    RepositoryException,
    TooEarlyError,
)
from ..core.timezone_utils import is_past, local_today, week_dates
from ..core.ulid_helper import generate_ulid
from ..database import get_db_session
from ..events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    SchedulingEvent,
    SchedulingEvents,
)
from ..integrations.session_catalog import SessionCatalog, default_catalog
from ..models.booking import Booking
from ..models.time_slot import TimeSlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .slot_store import SlotStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"


@dataclass(frozen=True)
class ContactInfo:
    """Contact details captured with a booking request."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class WindowStatistics:
    start_date: date
    end_date: date
    available: int = 0
    pending: int = 0
    booked: int = 0
    unavailable: int = 0
    active_days: int = 0


@dataclass
class TutorStatistics:
    """
    Slot counts over two windows.

    ``upcoming`` is the rolling next seven days counting only slots that have
    not started; ``this_week`` is the Monday-start calendar week containing
    today, counting every slot in it.
    """

    tutor_id: str
    upcoming: WindowStatistics
    this_week: WindowStatistics
    completed_bookings: int = 0
    generated_at: Optional[datetime] = field(default=None)


def _window(start: date, end: date, slots: List[TimeSlot]) -> WindowStatistics:
    stats = WindowStatistics(start_date=start, end_date=end)
    active_dates = set()
    for slot in slots:
        if slot.status == SlotStatus.AVAILABLE:
            stats.available += 1
            active_dates.add(slot.slot_date)
        elif slot.status == SlotStatus.PENDING:
            stats.pending += 1
        elif slot.status == SlotStatus.BOOKED:
            stats.booked += 1
        else:
            stats.unavailable += 1
    stats.active_days = len(active_dates)
    return stats


class SchedulingService(BaseService):
    """
    Service for booking slots and moving bookings through their lifecycle.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        catalog: Optional[SessionCatalog] = None,
        slot_store: Optional[SlotStore] = None,
        booking_repository: Optional[BookingRepository] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        compensation_max_attempts: Optional[int] = None,
        compensation_base_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize scheduling service.

        Args:
            db: Database session for the request
            clock: Time source
            catalog: Session catalog used to price bookings
            session_factory: Factory for the independent sessions used by
                compensating releases (defaults to one bound like ``db``)
            compensation_max_attempts: Override settings.compensation_max_attempts
            compensation_base_delay: Override settings.compensation_base_delay_seconds
            sleep: Backoff sleeper, replaceable in tests
        """
        super().__init__(db, clock)
        self.catalog: SessionCatalog = catalog or default_catalog()
        self.slot_store = slot_store or SlotStore(db, self.clock)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.session_factory = session_factory or sessionmaker(
            bind=db.get_bind(), autoflush=False, expire_on_commit=False
        )
        self.compensation_max_attempts = (
            compensation_max_attempts
            if compensation_max_attempts is not None
            else settings.compensation_max_attempts
        )
        self.compensation_base_delay = (
            compensation_base_delay
            if compensation_base_delay is not None
            else settings.compensation_base_delay_seconds
        )
        self._sleep = sleep

    # Lookups and authorization

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(
                f"Booking {booking_id} not found",
                code="BOOKING_NOT_FOUND",
                details={"booking_id": booking_id},
            )
        return booking

    @staticmethod
    def _ensure_tutor(actor: Actor, booking: Booking) -> None:
        if not actor.can_act_for(booking.tutor_id):
            raise AuthorizationError("Only the booked tutor can do this")

    @staticmethod
    def _ensure_party(actor: Actor, booking: Booking) -> None:
        if not (actor.is_admin or booking.is_party(actor.id)):
            raise AuthorizationError("Only the tutor or learner of this booking can do this")

    def get_booking(self, booking_id: str, actor: Actor) -> Booking:
        booking = self._require_booking(booking_id)
        self._ensure_party(actor, booking)
        return booking

    def list_bookings(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[Booking]:
        """Bookings visible to the actor: every booking for admins, own bookings otherwise."""
        if actor.is_admin:
            return self.booking_repository.list_all(status=status, limit=limit)
        return self.booking_repository.list_for_party(actor.id, status=status, limit=limit)

    # Booking

    @BaseService.measure_operation("book")
    def book(
        self,
        tutor_id: str,
        learner_id: str,
        session_id: str,
        slot_date: date,
        hour: int,
        contact_info: Optional[ContactInfo] = None,
    ) -> Booking:
        """
        Claim a slot and create a PENDING booking for it.

        Raises:
            InvalidSlotError: Past slot, non-bookable hour or missing session
            NotFoundError: Unknown session
            SlotUnavailableError: The slot is not AVAILABLE (lost the race)
        """
        contact = contact_info or ContactInfo()
        if not session_id or not session_id.strip():
            raise InvalidSlotError("A session must be selected before booking")
        if isinstance(hour, bool) or not isinstance(hour, int) or hour not in ALLOWED_HOURS:
            raise InvalidSlotError(
                f"Hour {hour} cannot be booked", details={"hour": hour}
            )
        if learner_id == tutor_id:
            raise InvalidSlotError("Tutors cannot book their own slots")

        now = self.clock.now()
        if is_past(slot_date, hour, now):
            raise InvalidSlotError(
                "Cannot book a time that has already started",
                details={"date": slot_date.isoformat(), "hour": hour},
            )

        session = self.catalog.get_session(session_id)
        if session is None:
            raise NotFoundError(
                f"Session {session_id} not found",
                code="SESSION_NOT_FOUND",
                details={"session_id": session_id},
            )

        booking_id = generate_ulid()
        self.slot_store.claim(tutor_id, slot_date, hour, booking_id, now=now)

        try:
            with self.transaction():
                booking = self.booking_repository.create(
                    id=booking_id,
                    tutor_id=tutor_id,
                    learner_id=learner_id,
                    slot_date=slot_date,
                    hour=hour,
                    session_id=session.session_id,
                    session_title=session.title,
                    price=session.price,
                    status=BookingStatus.PENDING,
                    contact_name=contact.name,
                    contact_email=contact.email,
                    contact_phone=contact.phone,
                    notes=contact.notes,
                    created_at=now,
                    updated_at=now,
                )
        except Exception:
            self.logger.error(
                "Booking write failed after slot claim; releasing slot",
                extra={"booking_id": booking_id, "tutor_id": tutor_id},
                exc_info=True,
            )
            self._compensate_claim(tutor_id, slot_date, hour, booking_id, now)
            raise

        self.logger.info(
            f"Booking {booking_id} created for {tutor_id} on {slot_date.isoformat()} {hour:02d}:00",
            extra={"booking_id": booking_id, "tutor_id": tutor_id, "learner_id": learner_id},
        )
        SchedulingEvents.dispatch(
            BookingCreated(
                booking_id=booking_id,
                tutor_id=tutor_id,
                learner_id=learner_id,
                slot_date=slot_date,
                hour=hour,
                created_at=now,
            )
        )
        return booking

    def _compensate_claim(
        self, tutor_id: str, slot_date: date, hour: int, booking_id: str, now: datetime
    ) -> bool:
        """
        Release a claimed slot whose booking never got written.

        Runs in its own session so a broken request session cannot block it.
        The release is guarded by ``booking_id`` and therefore never frees a
        slot that has since been bound to another booking. It skips the
        started-slot check on purpose: it only undoes its own claim, which
        never had a booking behind it.
        """
        attempts = max(1, self.compensation_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                with get_db_session(self.session_factory) as session:
                    released = RepositoryFactory.create_slot_repository(session).release(
                        tutor_id, slot_date, hour, now, booking_id=booking_id
                    )
                self.logger.warning(
                    "Compensating release applied" if released else "Slot no longer held by claim",
                    extra={"booking_id": booking_id, "attempt": attempt},
                )
                return True
            except (SQLAlchemyError, RepositoryException) as exc:
                self.logger.warning(
                    f"Compensating release attempt {attempt}/{attempts} failed: {exc}",
                    extra={"booking_id": booking_id, "attempt": attempt},
                )
                if attempt < attempts:
                    self._sleep(self.compensation_base_delay * (2 ** (attempt - 1)))

        self.logger.critical(
            "RECONCILIATION REQUIRED: slot claimed for a booking that was never written",
            extra={
                "booking_id": booking_id,
                "tutor_id": tutor_id,
                "date": slot_date.isoformat(),
                "hour": hour,
            },
        )
        prometheus_metrics.inc_compensation_failure()
        return False

    # Lifecycle transitions

    @BaseService.measure_operation("confirm")
    def confirm(self, booking_id: str, actor: Actor) -> Booking:
        """PENDING -> CONFIRMED; the slot moves PENDING -> BOOKED."""
        booking = self._require_booking(booking_id)
        self._ensure_tutor(actor, booking)
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot confirm a {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value},
            )

        now = self.clock.now()
        with self.transaction():
            moved = self.booking_repository.transition(
                booking_id,
                from_statuses=[BookingStatus.PENDING],
                to_status=BookingStatus.CONFIRMED,
                confirmed_at=now,
                updated_at=now,
            )
            if moved != 1:
                raise InvalidTransitionError(
                    "Booking changed status concurrently", details={"booking_id": booking_id}
                )
            self.slot_store.apply_confirm(
                booking.tutor_id, booking.slot_date, booking.hour, booking_id=booking_id, now=now
            )

        self.log_operation("confirm", booking_id=booking_id, tutor_id=booking.tutor_id)
        SchedulingEvents.dispatch(
            BookingConfirmed(
                booking_id=booking_id,
                tutor_id=booking.tutor_id,
                learner_id=booking.learner_id,
                confirmed_at=now,
            )
        )
        return self._require_booking(booking_id)

    @BaseService.measure_operation("complete")
    def complete(self, booking_id: str, actor: Actor) -> Booking:
        """CONFIRMED -> COMPLETED once the lesson has started. The slot stays BOOKED."""
        booking = self._require_booking(booking_id)
        self._ensure_tutor(actor, booking)
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(
                f"Cannot complete a {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value},
            )

        now = self.clock.now()
        starts_at = booking.starts_at
        if now < starts_at:
            raise TooEarlyError(booking_id, starts_at.isoformat())

        with self.transaction():
            moved = self.booking_repository.transition(
                booking_id,
                from_statuses=[BookingStatus.CONFIRMED],
                to_status=BookingStatus.COMPLETED,
                completed_at=now,
                updated_at=now,
            )
            if moved != 1:
                raise InvalidTransitionError(
                    "Booking changed status concurrently", details={"booking_id": booking_id}
                )

        self.log_operation("complete", booking_id=booking_id, tutor_id=booking.tutor_id)
        SchedulingEvents.dispatch(
            BookingCompleted(
                booking_id=booking_id,
                tutor_id=booking.tutor_id,
                learner_id=booking.learner_id,
                completed_at=now,
            )
        )
        return self._require_booking(booking_id)

    @BaseService.measure_operation("cancel")
    def cancel(self, booking_id: str, actor: Actor, reason: Optional[str] = None) -> Booking:
        """
        Cancel a PENDING or CONFIRMED booking and return its slot to AVAILABLE.

        Raises:
            InvalidTransitionError: The booking is already COMPLETED or CANCELLED
        """
        booking = self._require_booking(booking_id)
        self._ensure_party(actor, booking)
        self._cancel(booking, actor.id, reason, AuditReason.BOOKING_CANCELLED)
        return self._require_booking(booking_id)

    def _cancel(
        self,
        booking: Booking,
        cancelled_by: str,
        reason: Optional[str],
        audit_reason: AuditReason,
        now: Optional[datetime] = None,
    ) -> None:
        if booking.status not in BookingStatus.active():
            raise InvalidTransitionError(
                f"Cannot cancel a {booking.status.value} booking",
                details={"booking_id": booking.id, "status": booking.status.value},
            )

        now = now if now is not None else self.clock.now()
        # An elapsed slot is history: the booking is cancelled, the slot is left as is
        slot_elapsed = is_past(booking.slot_date, booking.hour, now)
        events: List[SchedulingEvent] = []
        with self.transaction():
            moved = self.booking_repository.transition(
                booking.id,
                from_statuses=list(BookingStatus.active()),
                to_status=BookingStatus.CANCELLED,
                cancelled_at=now,
                cancelled_by=cancelled_by,
                cancellation_reason=reason,
                updated_at=now,
            )
            if moved != 1:
                raise InvalidTransitionError(
                    "Booking is no longer active", details={"booking_id": booking.id}
                )
            if slot_elapsed:
                self.logger.info(
                    "Cancelled booking after its slot started; slot left unchanged",
                    extra={"booking_id": booking.id},
                )
            else:
                try:
                    events.extend(
                        self.slot_store.apply_release(
                            booking.tutor_id,
                            booking.slot_date,
                            booking.hour,
                            booking_id=booking.id,
                            now=now,
                            reason=audit_reason,
                            actor_id=cancelled_by,
                        )
                    )
                except (InvalidTransitionError, NotFoundError):
                    # Slot was already freed (for example by reconciliation)
                    self.logger.warning(
                        "Cancelled booking was not holding its slot",
                        extra={"booking_id": booking.id},
                    )

        self.log_operation(
            "cancel", booking_id=booking.id, cancelled_by=cancelled_by, reason=audit_reason.value
        )
        events.append(
            BookingCancelled(
                booking_id=booking.id,
                tutor_id=booking.tutor_id,
                learner_id=booking.learner_id,
                cancelled_by=cancelled_by,
                reason=reason,
                cancelled_at=now,
            )
        )
        SchedulingEvents.dispatch_all(events)

    # Maintenance

    @BaseService.measure_operation("expire_stale_pending")
    def expire_stale_pending(self, max_age_minutes: Optional[int] = None) -> int:
        """
        Cancel PENDING bookings that were never confirmed in time and free
        their slots. Returns the number of bookings expired.
        """
        minutes = max_age_minutes if max_age_minutes is not None else settings.pending_expiry_minutes
        now = self.clock.now()
        cutoff = now - timedelta(minutes=minutes)

        expired = 0
        for booking in self.booking_repository.list_stale_pending(cutoff):
            try:
                self._cancel(
                    booking,
                    SYSTEM_ACTOR_ID,
                    "Confirmation window expired",
                    AuditReason.BOOKING_EXPIRED,
                    now=now,
                )
                expired += 1
            except InvalidTransitionError:
                # Confirmed or cancelled since we listed it
                continue

        if expired:
            self.logger.info(f"Expired {expired} stale pending bookings")
        prometheus_metrics.inc_slots_reconciled("expiry", expired)
        return expired

    @BaseService.measure_operation("reconcile_orphaned_slots")
    def reconcile_orphaned_slots(self, grace_seconds: Optional[int] = None) -> int:
        """
        Free PENDING/BOOKED slots whose booking is missing or cancelled.

        Only slots untouched for ``grace_seconds`` are considered, so a claim
        whose booking write is still in flight is not mistaken for an orphan.
        Slots that have already started are left as they are.
        """
        grace = grace_seconds if grace_seconds is not None else settings.reconciliation_grace_seconds
        now = self.clock.now()
        orphans = self.slot_store.repository.find_orphaned(
            now - timedelta(seconds=grace), from_date=local_today(now)
        )

        freed = 0
        for slot in orphans:
            tutor_id, slot_date, hour, booking_id = (
                slot.tutor_id,
                slot.slot_date,
                slot.hour,
                slot.booking_id,
            )
            if is_past(slot_date, hour, now):
                continue
            try:
                self.slot_store.release(
                    tutor_id,
                    slot_date,
                    hour,
                    booking_id=booking_id,
                    now=now,
                    reason=AuditReason.RECONCILIATION,
                    actor_id=SYSTEM_ACTOR_ID,
                )
            except InvalidTransitionError:
                continue
            freed += 1
            self.logger.warning(
                "Released orphaned slot",
                extra={
                    "tutor_id": tutor_id,
                    "date": slot_date.isoformat(),
                    "hour": hour,
                    "booking_id": booking_id,
                },
            )

        prometheus_metrics.inc_slots_reconciled("reconciliation", freed)
        return freed

    # Reporting

    def tutor_statistics(self, tutor_id: str) -> TutorStatistics:
        now = self.clock.now()
        today = local_today(now)

        upcoming_end = today + timedelta(days=UPCOMING_WINDOW_DAYS - 1)
        upcoming_slots = [
            slot
            for slot in self.slot_store.list_for_range(tutor_id, today, upcoming_end)
            if not is_past(slot.slot_date, slot.hour, now)
        ]

        week = week_dates(today)
        week_slots = self.slot_store.list_for_range(tutor_id, week[0], week[-1])

        return TutorStatistics(
            tutor_id=tutor_id,
            upcoming=_window(today, upcoming_end, upcoming_slots),
            this_week=_window(week[0], week[-1], week_slots),
            completed_bookings=self.booking_repository.count_for_tutor(
                tutor_id, BookingStatus.COMPLETED
            ),
            generated_at=now,
        )
