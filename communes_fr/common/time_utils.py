"""Date helpers for run metadata and snapshot naming."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_timestamp_iso() -> str:
    return utc_now().isoformat(timespec="milliseconds")


def parse_run_date(value: str | None) -> date:
    """Snapshots are named after the local calendar date unless one is given."""
    if not value:
        return date.today()
    return date.fromisoformat(value)


def day_month_year(value: date) -> str:
    return f"{value.day}-{value.month}-{value.year}"
