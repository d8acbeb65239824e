#!/usr/bin/env python3
"""
Propose (and optionally book) an appointment for a work order.

Fetches the technician's calendar, reports whether the order is already
booked, otherwise prints the next free slot.

Usage:
    uv run python src/scripts/propose_slot.py --technician p-1 \
        --reference BT-2025-0042 --client "OPH DE DRANCY" --date 17/11/2025
    uv run python src/scripts/propose_slot.py ... --book --document order.pdf
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config_store import ConfigStore
from models.events import Attachment
from models.registry import JobRecord
from services.calendar import GraphCalendarBackend
from services.editor import EventEditor
from services.scheduling import ScheduleState, ScheduleStatus, SchedulingOrchestrator


def print_state(state: ScheduleState):
    print(f"Status: {state.status.value} ({len(state.events)} events on the calendar)")
    if state.status == ScheduleStatus.CONFIRMED and state.booking:
        print(f"  Already booked: {state.booking.title} on {state.booking.start:%d/%m/%Y %H:%M}")
    elif state.status == ScheduleStatus.PROPOSED and state.tentative:
        print(f"  Proposed slot: {state.appointment} -> {state.tentative.end:%Hh%M}")
        print(f"  Title: {state.tentative.title}")
    elif state.error:
        print(f"  {state.error}")


async def main(args: argparse.Namespace) -> int:
    config = ConfigStore().load()
    technician = config.find_technician(args.technician)
    if technician is None:
        print(f"Unknown technician: {args.technician}")
        return 1

    backend = GraphCalendarBackend(config)
    orchestrator = SchedulingOrchestrator(backend, config)
    job = JobRecord(
        reference_code=args.reference,
        client_name=args.client,
        delay_text=args.date,
        work_description=args.description,
    )
    orchestrator.update_job(job)
    await orchestrator.select_technician(technician.id)
    state = orchestrator.state
    print_state(state)

    if not args.book:
        return 0
    if state.status != ScheduleStatus.PROPOSED or state.tentative is None:
        print("Nothing to book.")
        return 1

    attachment = None
    if args.document:
        path = Path(args.document)
        attachment = Attachment(name=path.name, content=path.read_bytes())

    editor = EventEditor(backend, technician.id, on_saved=orchestrator.notify_saved)
    editor.open(state.tentative)
    if not await editor.save(attachment):
        print(f"Booking failed: {editor.error}")
        return 1

    print("Booked.")
    print_state(orchestrator.state)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Propose an appointment slot for a work order")
    parser.add_argument("--technician", required=True, help="Technician id from the configuration")
    parser.add_argument("--reference", help="Work order number")
    parser.add_argument("--client", help="Client name")
    parser.add_argument("--date", help="Intervention date (DD/MM/YYYY). Defaults to today.")
    parser.add_argument("--description", help="Work description")
    parser.add_argument("--book", action="store_true", help="Create the proposed event")
    parser.add_argument("--document", help="PDF to attach when booking")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args)))
