"""
Date parsing and formatting for work orders.
"""

import re
from datetime import date, datetime, tzinfo

from core.config import DAY_START, SCHEDULE_FORMAT

# "15/11/2025", "3/2/25 avant midi", "Délai : 15/11/2025"
DATE_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})")


def parse_order_date(text: str | None) -> date | None:
    """Extract the first D/M/Y date from free text, or None."""
    if not text:
        return None
    match = DATE_PATTERN.search(text)
    if not match:
        return None

    day, month, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def job_date(
    delay_text: str | None,
    intervention_date: str | None,
    today: date,
    tz: tzinfo | None = None,
) -> datetime:
    """
    Date the scheduler searches from, at the day start.

    The intervention delay wins over the intervention date; when neither
    parses, today is used.
    """
    parsed = parse_order_date(delay_text) or parse_order_date(intervention_date) or today
    return datetime.combine(parsed, DAY_START, tzinfo=tz)


def format_schedule(moment: datetime) -> str:
    """Format as DD/MM/YYYY HHhMM, e.g. '03/11/2025 14h05'."""
    return moment.strftime(SCHEDULE_FORMAT)
