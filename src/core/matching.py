"""
Matching of jobs against calendar events and of client names against the
ERP client registry.
"""

import re
from typing import Iterable

from core.config import MIN_REFERENCE_LENGTH
from models.events import CalendarEvent
from models.registry import Client

NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def normalize_reference(text: str | None) -> str:
    """Keep only ASCII letters and digits ("BT-12/345" -> "BT12345"); case is kept."""
    if not text:
        return ""
    return NON_ALPHANUMERIC.sub("", text)


def find_booking(reference_code: str | None, events: Iterable[CalendarEvent]) -> CalendarEvent | None:
    """
    Find the event already booked for a job.

    An event matches when its title or description contains the job's
    reference code, both compared in normalized form. Codes of 3 characters
    or fewer never match.
    """
    reference = normalize_reference(reference_code)
    if len(reference) < MIN_REFERENCE_LENGTH:
        return None

    for event in events:
        if event.is_tentative:
            continue
        if reference in normalize_reference(event.title):
            return event
        if reference in normalize_reference(event.description):
            return event
    return None


def is_booked(reference_code: str | None, events: Iterable[CalendarEvent]) -> bool:
    return find_booking(reference_code, events) is not None


def match_client(client_name: str | None, clients: Iterable[Client]) -> Client | None:
    """
    Map an extracted client name to a registry entry.

    Names match when equal or when either contains the other, ignoring case
    and surrounding spaces. "OPH" therefore matches "OPH DE DRANCY", and so
    would any longer name that happens to contain a registered one.
    """
    if not client_name or not client_name.strip():
        return None
    search = client_name.strip().lower()

    for client in clients:
        registered = client.name.strip().lower()
        if not registered:
            continue
        if search == registered or registered in search or search in registered:
            return client
    return None
