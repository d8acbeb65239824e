#!/usr/bin/env python3
"""
List configured technicians and the state of their MS365 calendars.

Usage:
    uv run python src/scripts/list_technician_calendars.py
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config_store import ConfigStore
from services.calendar import GraphCalendarBackend


async def main():
    """Show each technician with the number of upcoming events."""
    config = ConfigStore().load()
    backend = GraphCalendarBackend(config)

    print(f"Found {len(config.technicians)} technicians\n")
    print("=" * 80)

    for technician in config.technicians:
        print(f"\nTechnician: {technician.name} ({technician.id})")
        print(f"  Company: {technician.company or '-'}")
        print(f"  Payroll code: {technician.payroll_code or '-'}")

        if not technician.has_calendar:
            print("  Calendar: not configured")
            print("-" * 80)
            continue

        print(f"  Calendar user: {technician.calendar_user}")
        result = await backend.list_events(technician.id)
        if not result.success:
            print(f"  Error fetching events: {result.error}")
        else:
            print(f"  Events ({len(result.events)}):")
            for event in result.events[:10]:
                print(f"    - {event.start:%d/%m/%Y %H:%M}-{event.end:%H:%M} {event.title}")
            if len(result.events) > 10:
                print(f"    ... {len(result.events) - 10} more")

        print("-" * 80)

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
