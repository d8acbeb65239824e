"""
Calendar event and time interval models.

Intervals are half-open: [start, end). Two intervals that only touch
(one ends exactly when the other starts) do not overlap.
"""

from dataclasses import dataclass
from datetime import datetime

from core.config import TENTATIVE_EVENT_ID


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Check whether [a_start, a_end) and [b_start, b_end) overlap."""
    return a_start < b_end and a_end > b_start


@dataclass(frozen=True)
class Slot:
    """A candidate appointment interval."""

    start: datetime
    end: datetime


@dataclass
class CalendarEvent:
    """One appointment on a technician calendar, fetched or proposed."""

    id: str
    title: str
    start: datetime
    end: datetime
    location: str = ""
    description: str = ""
    is_tentative: bool = False

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Event '{self.title}' ends before it starts")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.start, self.end, start, end)

    @property
    def is_persisted(self) -> bool:
        return not self.is_tentative and self.id != TENTATIVE_EVENT_ID


@dataclass(frozen=True)
class Attachment:
    """Source document attached to an event when it is first saved."""

    name: str
    content: bytes
    content_type: str = "application/pdf"
