"""Display formats shared by read models and the report numbering."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

REPORT_LABEL_PREFIX = "Rep#"


def format_report_label(number: int) -> str:
    """Format a sequence number as a report label, e.g. ``Rep#007``."""
    if number < 1:
        raise ValueError("Report numbers start at 1")
    return f"{REPORT_LABEL_PREFIX}{number:03d}"


def format_display_date(value: date | datetime | None) -> str | None:
    """Format a date as ``MMM DD YYYY`` (``Jan 05 2026``)."""
    if value is None:
        return None
    return value.strftime("%b %d %Y")


def short_transaction_id(record_id: UUID | str) -> str:
    """Short display identifier for wallet entries."""
    return f"#transaction_{str(record_id)[:6]}"


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` of the calendar month containing ``now``.

    ``now`` is a naive UTC datetime, so the bounds are UTC month boundaries.
    """
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end
