"""Tests for the appointment edit session."""

import asyncio

import pytest

from conftest import MONDAY
from fixtures.calendars import FakeCalendarBackend, at, make_event
from models.events import Attachment, CalendarEvent
from services.editor import EventEditor, NoOpenEventError, SaveInProgressError


@pytest.fixture
def proposal() -> CalendarEvent:
    return CalendarEvent(
        id="tentative",
        title="BT-2025/0042 - 202500 - OPH DE DRANCY",
        start=at(MONDAY, 8, 30),
        end=at(MONDAY, 10, 30),
        location="12 rue de la République, 93700 Drancy",
        is_tentative=True,
    )


@pytest.fixture
def document() -> Attachment:
    return Attachment(name="BT-2025-0042.pdf", content=b"%PDF-1.7")


def test_open_works_on_a_copy(backend, proposal):
    editor = EventEditor(backend, "t-1")

    opened = editor.open(proposal)
    editor.edit(title="Autre titre")

    assert opened is not proposal
    assert proposal.title == "BT-2025/0042 - 202500 - OPH DE DRANCY"
    assert editor.event.title == "Autre titre"


def test_edit_rejects_inverted_interval(backend, proposal):
    editor = EventEditor(backend, "t-1")
    editor.open(proposal)

    with pytest.raises(ValueError):
        editor.edit(end=at(MONDAY, 8, 0))


def test_edit_without_open_event(backend):
    with pytest.raises(NoOpenEventError):
        EventEditor(backend, "t-1").edit(title="x")


def test_save_without_open_event(backend):
    with pytest.raises(NoOpenEventError):
        asyncio.run(EventEditor(backend, "t-1").save())


def test_tentative_event_is_created_with_document(backend, proposal, document):
    saved = []

    async def on_saved():
        saved.append(True)

    editor = EventEditor(backend, "t-1", on_saved=on_saved)
    editor.open(proposal)

    assert asyncio.run(editor.save(document)) is True

    technician_id, sent, attachment = backend.saved[0]
    assert technician_id == "t-1"
    assert sent.is_tentative
    assert attachment is document
    assert editor.saved_event_id == "created-1"
    assert backend.events["t-1"][0].title == proposal.title
    assert not editor.is_open
    assert saved == [True]


def test_existing_event_is_updated_without_document(proposal, document):
    existing = make_event(at(MONDAY, 13), at(MONDAY, 15), "Chantier", event_id="evt-1")
    backend = FakeCalendarBackend({"t-1": [existing]})
    editor = EventEditor(backend, "t-1")
    editor.open(existing)
    editor.edit(start=at(MONDAY, 14), end=at(MONDAY, 16), description="Décalé")

    assert asyncio.run(editor.save(document)) is True

    _, sent, attachment = backend.saved[0]
    assert attachment is None
    assert editor.saved_event_id == "evt-1"
    assert backend.events["t-1"] == [sent]
    assert sent.start == at(MONDAY, 14)
    assert existing.start == at(MONDAY, 13)


def test_failed_save_keeps_session_open(backend, proposal):
    called = []

    async def on_saved():
        called.append(True)

    backend.save_error = "403 Forbidden"
    editor = EventEditor(backend, "t-1", on_saved=on_saved)
    editor.open(proposal)

    assert asyncio.run(editor.save()) is False

    assert editor.is_open
    assert editor.error == "403 Forbidden"
    assert called == []

    backend.save_error = None
    assert asyncio.run(editor.save()) is True
    assert editor.error is None


def test_backend_exception_is_reported(proposal):
    class BrokenBackend(FakeCalendarBackend):
        async def save_event(self, technician_id, event, attachment=None):
            raise TimeoutError("Graph timed out")

    editor = EventEditor(BrokenBackend(), "t-1")
    editor.open(proposal)

    assert asyncio.run(editor.save()) is False
    assert editor.error == "Graph timed out"


def test_concurrent_save_is_refused(backend, proposal):
    editor = EventEditor(backend, "t-1")
    editor.open(proposal)

    async def scenario():
        backend.save_gate = asyncio.Event()
        first = asyncio.create_task(editor.save())
        await asyncio.sleep(0)
        assert editor.is_saving
        with pytest.raises(SaveInProgressError):
            await editor.save()
        backend.save_gate.set()
        return await first

    assert asyncio.run(scenario()) is True
    assert len(backend.saved) == 1
    assert not editor.is_saving
