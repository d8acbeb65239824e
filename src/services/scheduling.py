"""
Appointment scheduling for an analysed work order.

`compute_schedule` is the pure decision: given a job and a technician's
events, the job is either already booked (CONFIRMED), gets a tentative
slot (PROPOSED), cannot be placed (NO_SLOT) or has nothing to schedule
(EMPTY).

`SchedulingOrchestrator` owns the fetched events for the selected
technician, re-runs the decision whenever the technician, the job or the
events change, and publishes each new stable state to its listeners. The
job's `appointment` field is written back by one of those listeners,
after the recomputation has finished.
"""

import asyncio
import re
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

from core.config import CALENDAR_TIMEZONE, TENTATIVE_EVENT_ID
from core.dates import format_schedule, job_date
from core.matching import find_booking
from core.slots import WorkingHours, find_next_slot
from models.events import CalendarEvent, Slot
from models.registry import JobRecord, StorageConfig, Technician
from services.calendar import CalendarBackend, EventListResult

TITLE_SEPARATOR = " - "
ORDER_NUMBER_LENGTH = 6


class ScheduleStatus(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    PROPOSED = "proposed"
    CONFIRMED = "confirmed"
    NO_SLOT = "no_slot"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class ScheduleState:
    """Result of one scheduling pass."""

    status: ScheduleStatus
    events: tuple[CalendarEvent, ...] = ()
    tentative: CalendarEvent | None = None
    booking: CalendarEvent | None = None
    error: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.status == ScheduleStatus.CONFIRMED

    @property
    def appointment(self) -> str | None:
        """Formatted start of the proposed slot."""
        if self.tentative is None:
            return None
        return format_schedule(self.tentative.start)

    def working_set(self) -> list[CalendarEvent]:
        """Fetched events plus the proposal, if any."""
        events = list(self.events)
        if self.tentative is not None:
            events.append(self.tentative)
        return events


# =============================================================================
# PROPOSALS
# =============================================================================


def order_number(reference_code: str | None) -> str:
    """ERP job number: the digits of the reference, at most six."""
    if not reference_code:
        return ""
    return re.sub(r"\D", "", reference_code)[:ORDER_NUMBER_LENGTH]


def proposal_title(job: JobRecord) -> str:
    reference = (job.reference_code or "").strip()
    number = order_number(reference)
    parts = [reference, number if number != reference else "", (job.client_name or "").strip()]
    return TITLE_SEPARATOR.join(p for p in parts if p)


def proposal_description(job: JobRecord) -> str:
    contact = " ".join(p.strip() for p in (job.contact_name, job.contact_phone) if p and p.strip())
    lines = [
        ("Client", job.client_name),
        ("Contact", contact),
        ("Travaux", job.work_description),
        ("Ref", job.reference_code),
    ]
    return "\n".join(f"{label}: {value.strip()}" for label, value in lines if value and value.strip())


def build_proposal(job: JobRecord, slot: Slot) -> CalendarEvent:
    """Tentative event for a job placed in `slot`."""
    return CalendarEvent(
        id=TENTATIVE_EVENT_ID,
        title=proposal_title(job),
        start=slot.start,
        end=slot.end,
        location=job.address,
        description=proposal_description(job),
        is_tentative=True,
    )


# =============================================================================
# DECISION
# =============================================================================


def compute_schedule(
    job: JobRecord | None,
    events: Iterable[CalendarEvent],
    today: date,
    tz: tzinfo | None = None,
    hours: WorkingHours = WorkingHours(),
) -> ScheduleState:
    """Decide between an existing booking, a new proposal, or nothing."""
    fetched = tuple(e for e in events if not e.is_tentative)
    if job is None:
        return ScheduleState(ScheduleStatus.EMPTY, events=fetched)

    if job.reference_code and fetched:
        booking = find_booking(job.reference_code, fetched)
        if booking is not None:
            return ScheduleState(ScheduleStatus.CONFIRMED, events=fetched, booking=booking)

    if not (job.client_name and job.client_name.strip()):
        return ScheduleState(ScheduleStatus.EMPTY, events=fetched)

    base = job_date(job.delay_text, job.intervention_date, today, search_timezone(fetched, tz))
    slot = find_next_slot(base, fetched, hours)
    if slot is None:
        return ScheduleState(
            ScheduleStatus.NO_SLOT,
            events=fetched,
            error=f"No free slot within {hours.max_iterations} search steps from {base:%d/%m/%Y}",
        )
    return ScheduleState(ScheduleStatus.PROPOSED, events=fetched, tentative=build_proposal(job, slot))


def search_timezone(events: tuple[CalendarEvent, ...], tz: tzinfo | None) -> tzinfo | None:
    """Time zone of the search base, matching whether the events are aware."""
    for event in events:
        if event.start.tzinfo is None:
            return None
        return tz or event.start.tzinfo
    return tz


def apply_appointment(job: JobRecord, state: ScheduleState) -> bool:
    """Write the proposed slot into the job; returns False when nothing changed."""
    if state.status != ScheduleStatus.PROPOSED:
        return False
    formatted = state.appointment
    if job.appointment == formatted:
        return False
    job.appointment = formatted
    return True


# =============================================================================
# ORCHESTRATION
# =============================================================================


class SchedulingOrchestrator:
    """
    Keeps the schedule of one job on one technician's calendar up to date.

    Fetches are superseded by newer triggers: each trigger bumps a
    generation counter and cancels the in-flight request, and a response
    for an older generation is dropped.
    """

    def __init__(
        self,
        backend: CalendarBackend,
        config: StorageConfig,
        hours: WorkingHours = WorkingHours(),
        tz: tzinfo | None = ZoneInfo(CALENDAR_TIMEZONE),
        today: Callable[[], date] | None = None,
    ):
        self.backend = backend
        self.config = config
        self.hours = hours
        self.tz = tz
        self._today = today or (lambda: datetime.now(self.tz).date())

        self._technician: Technician | None = None
        self._job: JobRecord | None = None
        self._events: list[CalendarEvent] = []
        self._fetch_error: str | None = None
        self._fetched = False
        self._loading = False
        self._generation = 0
        self._fetch_task: asyncio.Task | None = None
        self.save_count = 0

        self._state = ScheduleState(ScheduleStatus.EMPTY)
        self._listeners: list[Callable[[ScheduleState], None]] = [self._write_back]
        self._job_listeners: list[Callable[[JobRecord], None]] = []
        self._pending: deque[ScheduleState] = deque()
        self._dispatching = False

    # -------------------------------------------------------------------------
    # Public state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ScheduleState:
        return self._state

    @property
    def job(self) -> JobRecord | None:
        return self._job

    @property
    def technician(self) -> Technician | None:
        return self._technician

    @property
    def is_fetching(self) -> bool:
        return self._loading

    def subscribe(self, listener: Callable[[ScheduleState], None]) -> Callable[[], None]:
        """Register a state listener; returns a function removing it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def subscribe_job(self, listener: Callable[[JobRecord], None]) -> Callable[[], None]:
        """Register a listener called after the job's appointment is written."""
        self._job_listeners.append(listener)
        return lambda: self._job_listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    async def update_config(self, config: StorageConfig) -> None:
        """
        Swap the registry; the selected technician is re-resolved by id.

        A technician whose calendar account changed, or who was removed, is
        refetched; otherwise the schedule is only recomputed.
        """
        self.config = config
        previous = self._technician
        if previous is None:
            return
        technician = config.find_technician(previous.id)
        self._technician = technician
        if technician is None or technician.calendar_user != previous.calendar_user:
            self._events = []
            self._fetch_error = None
            self._fetched = False
            await self._fetch()
        else:
            self._recompute()

    def update_job(self, job: JobRecord | None) -> None:
        self._job = job
        self._recompute()

    async def select_technician(self, technician_id: str | None) -> None:
        """Switch calendars; the previous technician's events are dropped at once."""
        technician = self.config.find_technician(technician_id) if technician_id else None
        self._technician = technician
        self._events = []
        self._fetch_error = None
        self._fetched = False
        await self._fetch()

    async def refresh(self) -> None:
        await self._fetch()

    async def notify_saved(self) -> None:
        """Called after an event was persisted so the booking shows up."""
        self.save_count += 1
        await self._fetch()

    def close(self) -> None:
        """Leave the view: nothing in flight may update the state anymore."""
        self._generation += 1
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None
        self._loading = False

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _fetch(self) -> None:
        self._generation += 1
        generation = self._generation
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None

        technician = self._technician
        if technician is None or not technician.has_calendar:
            self._loading = False
            self._events = []
            self._fetch_error = None
            self._recompute()
            return

        self._loading = True
        self._recompute()

        task = asyncio.create_task(self.backend.list_events(technician.id))
        self._fetch_task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return
            raise
        except Exception as e:
            result = EventListResult(success=False, error=str(e) or e.__class__.__name__)

        if generation != self._generation:
            return

        self._fetch_task = None
        self._loading = False
        if result.success:
            self._events = list(result.events)
            self._fetch_error = None
            self._fetched = True
        else:
            self._events = []
            self._fetch_error = result.error or "Calendar fetch failed"
        self._recompute()

    def _compute(self) -> ScheduleState:
        technician = self._technician
        if technician is None or not technician.has_calendar:
            return ScheduleState(ScheduleStatus.EMPTY)
        if self._fetch_error is not None:
            return ScheduleState(ScheduleStatus.FETCH_FAILED, error=self._fetch_error)
        # A refresh of an already fetched calendar keeps using the last events
        if self._loading and not self._fetched:
            return ScheduleState(ScheduleStatus.LOADING)
        return compute_schedule(self._job, self._events, self._today(), self.tz, self.hours)

    def _recompute(self) -> None:
        state = self._compute()
        if state == self._state:
            return
        self._state = state
        self._publish(state)

    def _publish(self, state: ScheduleState) -> None:
        """Deliver a state to listeners; states raised during delivery are queued."""
        self._pending.append(state)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for listener in list(self._listeners):
                    listener(current)
        finally:
            self._dispatching = False

    def _write_back(self, state: ScheduleState) -> None:
        if self._job is None:
            return
        if apply_appointment(self._job, state):
            for listener in list(self._job_listeners):
                listener(self._job)
