"""
Manual editing and persistence of a proposed or existing appointment.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Callable

from models.events import Attachment, CalendarEvent
from services.calendar import CalendarBackend, SaveResult


class EditorError(Exception):
    """Base class for edit session errors."""


class NoOpenEventError(EditorError):
    """Raised when saving or editing without an open event."""


class SaveInProgressError(EditorError):
    """Raised when a save is attempted while another one is in flight."""


class EventEditor:
    """
    Edit session over one calendar event of one technician.

    `open` works on a copy, so the scheduler's working set is never touched.
    A tentative event is created on save (with the source document, if
    given); a fetched event is updated.
    """

    def __init__(
        self,
        backend: CalendarBackend,
        technician_id: str,
        on_saved: Callable[[], Awaitable[None]] | None = None,
    ):
        self.backend = backend
        self.technician_id = technician_id
        self.on_saved = on_saved
        self.event: CalendarEvent | None = None
        self.error: str | None = None
        self.saved_event_id: str | None = None
        self.warning: str | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self.event is not None

    @property
    def is_saving(self) -> bool:
        return self._lock.locked()

    def open(self, event: CalendarEvent) -> CalendarEvent:
        self.event = replace(event)
        self.error = None
        self.warning = None
        return self.event

    def close(self) -> None:
        self.event = None
        self.error = None

    def edit(
        self,
        *,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        location: str | None = None,
        description: str | None = None,
    ) -> CalendarEvent:
        """Change fields of the open event; the interval must stay valid."""
        if self.event is None:
            raise NoOpenEventError("No event is open for editing")
        changes = {
            name: value
            for name, value in (
                ("title", title),
                ("start", start),
                ("end", end),
                ("location", location),
                ("description", description),
            )
            if value is not None
        }
        # replace() re-runs the start/end check
        self.event = replace(self.event, **changes)
        return self.event

    async def save(self, attachment: Attachment | None = None) -> bool:
        """
        Persist the open event.

        Returns True on success, after which the session is closed and
        `on_saved` has run. On failure the session stays open with `error`
        set, ready for another attempt.

        Raises:
            NoOpenEventError: nothing is open
            SaveInProgressError: a save for this session is already running
        """
        if self.event is None:
            raise NoOpenEventError("No event is open for editing")
        if self._lock.locked():
            raise SaveInProgressError("A save is already in progress for this event")

        async with self._lock:
            event = self.event
            document = attachment if event.is_tentative else None
            try:
                result = await self.backend.save_event(self.technician_id, event, document)
            except Exception as e:
                result = SaveResult(success=False, error=str(e) or e.__class__.__name__)

            if not result.success:
                self.error = result.error or "Calendar rejected the event"
                return False

            self.saved_event_id = result.event_id
            self.warning = result.error
            self.close()

        if self.on_saved is not None:
            await self.on_saved()
        return True
