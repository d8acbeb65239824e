"""Tests for booking detection and client registry matching."""

from datetime import datetime

import pytest

from core.matching import find_booking, is_booked, match_client, normalize_reference
from fixtures.calendars import make_event
from models.events import CalendarEvent
from models.registry import Client


def event(title: str, description: str = "") -> CalendarEvent:
    return make_event(datetime(2025, 11, 3, 8, 30), datetime(2025, 11, 3, 10, 30), title, description)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("AB12345", "AB12345"),
        ("bt-2025/0042", "bt20250042"),
        ("  N° 12 345 ", "N12345"),
        ("Réf. é-12", "Rf12"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_reference(raw, expected):
    assert normalize_reference(raw) == expected


def test_reference_in_title_is_booked():
    assert is_booked("AB12345", [event("Job AB12345 confirmed")])


def test_reference_in_description_is_booked():
    booked = event("OPH DE DRANCY", "Client: OPH\nRef: BT-2025/0042")
    assert find_booking("BT 2025 0042", [event("Autre"), booked]) is booked


def test_separators_are_ignored():
    assert is_booked("BT-2025-0042", [event("BT2025/0042 - Drancy")])


def test_reference_case_must_match():
    assert not is_booked("ab12345", [event("Job AB12345 confirmed")])
    assert not is_booked("BT-2025-0042", [event("bt2025/0042 - Drancy")])


@pytest.mark.parametrize("reference", ["", "12", "A-1", "ab1", None])
def test_short_references_never_match(reference):
    events = [event("12 AB1 A1"), event("", "12")]
    assert not is_booked(reference, events)


def test_four_characters_is_enough():
    assert is_booked("1234", [event("Chantier 1234")])


def test_unrelated_events_do_not_match():
    assert not is_booked("AB12345", [event("AB1234"), event("Job AB 1234 - 6")])


def test_tentative_events_never_count_as_bookings():
    proposal = CalendarEvent(
        id="tentative",
        title="AB12345 - OPH",
        start=datetime(2025, 11, 3, 8, 30),
        end=datetime(2025, 11, 3, 10, 30),
        is_tentative=True,
    )
    assert not is_booked("AB12345", [proposal])


def test_reference_inside_longer_code_is_a_match():
    # Containment is deliberately loose: 1234 is found inside 912345
    assert is_booked("1234", [event("Chantier 912345")])


@pytest.fixture
def clients():
    return [
        Client(id="c-1", name="OPH DE DRANCY", erp_code="411DRA038", deal_type="O3-0"),
        Client(id="c-2", name="VILOGIA", erp_code="411VIL001", deal_type="O1-A"),
    ]


def test_client_exact_match(clients):
    assert match_client("VILOGIA", clients).erp_code == "411VIL001"


def test_client_match_ignores_case_and_spaces(clients):
    assert match_client("  oph de drancy ", clients).id == "c-1"


def test_client_registered_name_inside_extracted_name(clients):
    assert match_client("VILOGIA SA - Agence Nord", clients).id == "c-2"


def test_client_extracted_name_inside_registered_name(clients):
    assert match_client("Drancy", clients).id == "c-1"


def test_client_substring_false_positive(clients):
    # "OPH" is a substring of an unrelated registry name, and it still matches
    assert match_client("OPH", clients).id == "c-1"


@pytest.mark.parametrize("name", [None, "", "   ", "Paris Habitat"])
def test_client_no_match(clients, name):
    assert match_client(name, clients) is None
