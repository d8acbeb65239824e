"""
Calendar fixtures: event builders, Faker-generated busy calendars and an
in-memory CalendarBackend.
"""

import asyncio
import random
from dataclasses import replace
from datetime import date, datetime, time, timedelta

from faker import Faker

from models.events import Attachment, CalendarEvent
from services.calendar import EventListResult, SaveResult

fake = Faker("fr_FR")

# Work descriptions used for generated appointments
WORK_DESCRIPTIONS = [
    "Remplacement fenêtre PVC",
    "Pose porte palière",
    "Réglage volets roulants",
    "Remplacement serrure 3 points",
    "Reprise joint de vitrage",
    "Pose bloc-porte coupe-feu",
]


def make_event(
    start: datetime,
    end: datetime,
    title: str = "Chantier",
    description: str = "",
    event_id: str | None = None,
) -> CalendarEvent:
    return CalendarEvent(
        id=event_id or f"evt-{start:%Y%m%d%H%M}-{end:%H%M}",
        title=title,
        start=start,
        end=end,
        description=description,
    )


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


def full_day(day: date) -> list[CalendarEvent]:
    """Back-to-back events covering 08:30-15:30."""
    return [
        make_event(at(day, 8, 30), at(day, 10, 30), "Matin"),
        make_event(at(day, 10, 30), at(day, 13, 0), "Midi"),
        make_event(at(day, 13, 0), at(day, 15, 30), "Après-midi"),
    ]


def random_busy_events(seed: int, start_day: date, days: int = 10) -> list[CalendarEvent]:
    """
    Generate a realistic technician calendar.

    Each day gets 0-4 appointments of 30 minutes to 3 hours starting on a
    quarter hour between 07:00 and 17:00; some overlap, as real calendars do.
    """
    rng = random.Random(seed)
    Faker.seed(seed)
    events = []
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        for index in range(rng.randint(0, 4)):
            start = at(day, 7) + timedelta(minutes=15 * rng.randint(0, 40))
            end = start + timedelta(minutes=30 * rng.randint(1, 6))
            events.append(
                make_event(
                    start,
                    end,
                    title=f"{fake.company()} - {rng.choice(WORK_DESCRIPTIONS)}",
                    description=fake.address(),
                    event_id=f"evt-{seed}-{offset}-{index}",
                )
            )
    rng.shuffle(events)
    return events


class FakeCalendarBackend:
    """
    In-memory CalendarBackend.

    `gates` holds an asyncio.Event per technician; list_events waits on it,
    which lets a test keep a fetch in flight.
    """

    def __init__(self, events: dict[str, list[CalendarEvent]] | None = None):
        self.events = {k: list(v) for k, v in (events or {}).items()}
        self.errors: dict[str, str] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.list_calls: list[str] = []
        self.saved: list[tuple[str, CalendarEvent, Attachment | None]] = []
        self.save_error: str | None = None
        self.save_gate: asyncio.Event | None = None

    async def list_events(self, technician_id: str) -> EventListResult:
        self.list_calls.append(technician_id)
        gate = self.gates.get(technician_id)
        if gate is not None:
            await gate.wait()
        if technician_id in self.errors:
            return EventListResult(success=False, error=self.errors[technician_id])
        return EventListResult(success=True, events=list(self.events.get(technician_id, [])))

    async def save_event(
        self,
        technician_id: str,
        event: CalendarEvent,
        attachment: Attachment | None = None,
    ) -> SaveResult:
        self.saved.append((technician_id, event, attachment))
        if self.save_gate is not None:
            await self.save_gate.wait()
        if self.save_error is not None:
            return SaveResult(success=False, error=self.save_error)

        calendar = self.events.setdefault(technician_id, [])
        if event.is_tentative:
            created = replace(event, id=f"created-{len(self.saved)}", is_tentative=False)
            calendar.append(created)
            return SaveResult(success=True, event_id=created.id)

        calendar[:] = [event if e.id == event.id else e for e in calendar]
        return SaveResult(success=True, event_id=event.id)
