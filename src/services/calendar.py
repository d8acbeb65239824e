"""
Technician calendar access through MS Graph.

`CalendarBackend` is the contract the scheduler depends on; the Graph
implementation resolves a technician id to the technician's Graph user and
works on that user's default calendar.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from msgraph.generated.models.attachment import Attachment as GraphAttachment
from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.date_time_time_zone import DateTimeTimeZone
from msgraph.generated.models.event import Event
from msgraph.generated.models.file_attachment import FileAttachment
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.location import Location
from msgraph.generated.users.item.calendar.events.events_request_builder import (
    EventsRequestBuilder,
)

from core.config import (
    CALENDAR_TIMEZONE,
    FETCH_DAYS_AFTER,
    FETCH_DAYS_BEFORE,
    FETCH_PAGE_SIZE,
)
from core.graph_client import get_graph_client
from models.events import Attachment, CalendarEvent
from models.registry import StorageConfig


@dataclass
class EventListResult:
    success: bool
    events: list[CalendarEvent] = field(default_factory=list)
    error: str | None = None


@dataclass
class SaveResult:
    success: bool
    event_id: str | None = None
    error: str | None = None  # On success, a non-blocking warning


class CalendarBackend(Protocol):
    """Remote calendar operations needed by the scheduler and the editor."""

    async def list_events(self, technician_id: str) -> EventListResult:
        ...

    async def save_event(
        self,
        technician_id: str,
        event: CalendarEvent,
        attachment: Attachment | None = None,
    ) -> SaveResult:
        ...


class GraphCalendarBackend:
    """CalendarBackend over the MS Graph default calendar of each technician."""

    def __init__(self, config: StorageConfig, tz_name: str = CALENDAR_TIMEZONE, graph=None):
        self.config = config
        self.tz_name = tz_name
        self.tz = ZoneInfo(tz_name)
        self._graph = graph

    @property
    def graph(self):
        if self._graph is None:
            self._graph = get_graph_client()
        return self._graph

    def _calendar_user(self, technician_id: str) -> str | None:
        technician = self.config.find_technician(technician_id)
        if technician is None or not technician.has_calendar:
            return None
        return technician.calendar_user.strip()

    async def list_events(self, technician_id: str) -> EventListResult:
        """Fetch the technician's events from a week ago to three months ahead."""
        user = self._calendar_user(technician_id)
        if user is None:
            return EventListResult(success=False, error=f"No calendar account for technician {technician_id}")

        today = datetime.now(self.tz).date()
        start_str, end_str = graph_window(today - timedelta(days=FETCH_DAYS_BEFORE), today + timedelta(days=FETCH_DAYS_AFTER))

        query_params = EventsRequestBuilder.EventsRequestBuilderGetQueryParameters(
            filter=f"start/dateTime ge '{start_str}' and start/dateTime lt '{end_str}'",
            orderby=["start/dateTime"],
            top=FETCH_PAGE_SIZE,
        )
        request_config = EventsRequestBuilder.EventsRequestBuilderGetRequestConfiguration(
            query_parameters=query_params
        )

        try:
            response = await self.graph.users.by_user_id(user).calendar.events.get(
                request_configuration=request_config
            )
        except Exception as e:
            print(f"  Error fetching events for {user}: {e}")
            return EventListResult(success=False, error=str(e))

        raw_events = response.value if response and response.value else []
        events = []
        for raw in raw_events:
            parsed = parse_event(raw, self.tz)
            if parsed is not None:
                events.append(parsed)
        return EventListResult(success=True, events=events)

    async def save_event(
        self,
        technician_id: str,
        event: CalendarEvent,
        attachment: Attachment | None = None,
    ) -> SaveResult:
        """Create a proposed event (with its document) or update an existing one."""
        user = self._calendar_user(technician_id)
        if user is None:
            return SaveResult(success=False, error=f"No calendar account for technician {technician_id}")

        body = to_graph_event(event, self.tz_name)

        try:
            user_events = self.graph.users.by_user_id(user)
            if event.is_persisted:
                await user_events.events.by_event_id(event.id).patch(body)
                print(f"Updated event {event.id} for {user}")
                return SaveResult(success=True, event_id=event.id)

            created = await user_events.calendar.events.post(body)
            event_id = created.id if created else None
            print(f"Created event '{event.title}' for {user}")
        except Exception as e:
            print(f"  Error saving event '{event.title}' for {user}: {e}")
            return SaveResult(success=False, error=str(e))

        if attachment is None or not event_id:
            return SaveResult(success=True, event_id=event_id)
        return await self._attach(user, event_id, attachment)

    async def _attach(self, user: str, event_id: str, attachment: Attachment) -> SaveResult:
        """
        Attach the source document to a just created event.

        If the attachment is refused the event is deleted again, so a retry
        starts from a clean calendar. If the delete fails too, the event is
        kept and reported as saved with the attachment error, since a retry
        would otherwise create a second event.
        """
        created = self.graph.users.by_user_id(user).events.by_event_id(event_id)
        try:
            await created.attachments.post(to_graph_attachment(attachment))
            return SaveResult(success=True, event_id=event_id)
        except Exception as e:
            print(f"  Error attaching '{attachment.name}' to event {event_id}: {e}")
            attach_error = str(e)

        try:
            await created.delete()
            print(f"  Deleted event {event_id} after failed attachment")
            return SaveResult(success=False, error=f"Attachment failed: {attach_error}")
        except Exception as e:
            print(f"  Error deleting event {event_id}: {e}")
            return SaveResult(
                success=True,
                event_id=event_id,
                error=f"Event saved without its document: {attach_error}",
            )


def graph_window(start_date: date, end_date: date) -> tuple[str, str]:
    """UTC filter bounds covering start_date to end_date inclusive."""
    start_dt = datetime.combine(start_date, datetime.min.time()).replace(tzinfo=timezone.utc)
    end_dt = datetime.combine(end_date + timedelta(days=1), datetime.min.time()).replace(
        tzinfo=timezone.utc
    )
    return start_dt.strftime("%Y-%m-%dT%H:%M:%SZ"), end_dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_graph_datetime(value: DateTimeTimeZone | None, tz: ZoneInfo) -> datetime | None:
    """Convert a Graph dateTime/timeZone pair to an aware datetime in `tz`."""
    if value is None or not value.date_time:
        return None
    # Graph sends 7 fractional digits, e.g. 2025-11-03T08:30:00.0000000
    naive = datetime.fromisoformat(value.date_time.split(".")[0].replace("Z", ""))
    try:
        source_tz = ZoneInfo(value.time_zone) if value.time_zone else timezone.utc
    except (ZoneInfoNotFoundError, ValueError):
        source_tz = timezone.utc
    return naive.replace(tzinfo=source_tz).astimezone(tz)


def parse_event(event: Event, tz: ZoneInfo) -> CalendarEvent | None:
    """Parse MS Graph event into our format; events without valid times are skipped."""
    try:
        start = parse_graph_datetime(event.start, tz)
        end = parse_graph_datetime(event.end, tz)
    except ValueError:
        return None
    if start is None or end is None or end <= start:
        return None

    description = ""
    if event.body and event.body.content:
        description = event.body.content.strip()
    elif event.body_preview:
        description = event.body_preview

    return CalendarEvent(
        id=event.id or "",
        title=event.subject or "",
        start=start,
        end=end,
        location=event.location.display_name or "" if event.location else "",
        description=description,
    )


def local_iso(moment: datetime, tz_name: str) -> str:
    """Wall-clock ISO string in `tz_name`; naive datetimes are taken as already local."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(ZoneInfo(tz_name))
    return moment.replace(tzinfo=None).isoformat(timespec="seconds")


def to_graph_event(event: CalendarEvent, tz_name: str) -> Event:
    """Convert a CalendarEvent to an MS Graph Event in the calendar time zone."""
    return Event(
        subject=event.title,
        start=DateTimeTimeZone(date_time=local_iso(event.start, tz_name), time_zone=tz_name),
        end=DateTimeTimeZone(date_time=local_iso(event.end, tz_name), time_zone=tz_name),
        location=Location(display_name=event.location) if event.location else None,
        body=ItemBody(content_type=BodyType.Text, content=event.description),
    )


def to_graph_attachment(attachment: Attachment) -> GraphAttachment:
    return FileAttachment(
        odata_type="#microsoft.graph.fileAttachment",
        name=attachment.name,
        content_type=attachment.content_type,
        content_bytes=attachment.content,
    )
