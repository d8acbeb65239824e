"""
First-fit appointment slot search.

Starting from the base day at the day start, the candidate slot walks
forward past colliding events until it fits, rolling over to the next
weekday whenever the working window is exhausted.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable

from core.config import DAY_START, LATEST_START, MAX_SEARCH_ITERATIONS, SLOT_DURATION_MINUTES
from models.events import CalendarEvent, Slot


@dataclass(frozen=True)
class WorkingHours:
    """Daily window a slot start must fall into, plus the slot length."""

    day_start: time = DAY_START
    latest_start: time = LATEST_START
    duration: timedelta = timedelta(minutes=SLOT_DURATION_MINUTES)
    max_iterations: int = MAX_SEARCH_ITERATIONS


def is_weekend(d: datetime) -> bool:
    return d.weekday() >= 5


def next_working_day(current: datetime, hours: WorkingHours) -> datetime:
    """Day start of the first weekday strictly after `current`."""
    day = current.date() + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return datetime.combine(day, hours.day_start, tzinfo=current.tzinfo)


def find_collision(
    events: Iterable[CalendarEvent], start: datetime, end: datetime
) -> CalendarEvent | None:
    """
    Find the event blocking [start, end).

    When several events collide, the one ending last is returned so the
    result does not depend on event order.
    """
    colliding = [e for e in events if e.overlaps(start, end)]
    if not colliding:
        return None
    return max(colliding, key=lambda e: (e.end, e.start, e.id))


def find_next_slot(
    base: datetime,
    events: Iterable[CalendarEvent],
    hours: WorkingHours = WorkingHours(),
) -> Slot | None:
    """
    Find the earliest free slot on or after the base day.

    Args:
        base: Day to start searching from. Its time of day is replaced by
            the day start.
        events: Busy events of one technician, in any order.
        hours: Working window and slot length.

    Returns:
        The slot, or None when no slot fits within the iteration bound.
    """
    busy = [e for e in events if not e.is_tentative]
    candidate = datetime.combine(base.date(), hours.day_start, tzinfo=base.tzinfo)

    for _ in range(hours.max_iterations):
        if is_weekend(candidate) or candidate.time() >= hours.latest_start:
            candidate = next_working_day(candidate, hours)
            continue

        if candidate.time() < hours.day_start:
            candidate = datetime.combine(candidate.date(), hours.day_start, tzinfo=candidate.tzinfo)

        end = candidate + hours.duration
        collision = find_collision(busy, candidate, end)
        if collision is None:
            return Slot(start=candidate, end=end)

        candidate = _as_local(collision.end, candidate)

    return None


def _as_local(moment: datetime, reference: datetime) -> datetime:
    """Express `moment` in the time zone of `reference`."""
    if moment.tzinfo is not None and reference.tzinfo is not None:
        return moment.astimezone(reference.tzinfo)
    return moment
