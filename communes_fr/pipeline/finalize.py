"""Postal-code ordering and snapshot serialisation."""

from __future__ import annotations

import json
import re
from datetime import date
from pathlib import Path
from typing import Iterable

from communes_fr.common.deterministic import stable_sorted
from communes_fr.common.errors import StageError
from communes_fr.common.fs import ensure_dir
from communes_fr.common.models import EnrichedRecord
from communes_fr.common.time_utils import day_month_year

_INTEGER_RE = re.compile(r"[+-]?\d+")


def postal_code_value(record: EnrichedRecord) -> int | None:
    """Numeric value of the first postal code, leading zeros ignored."""
    if not record.postal_codes:
        return None
    digits = record.postal_codes[0].lstrip("0")
    if not _INTEGER_RE.fullmatch(digits):
        return None
    return int(digits)


def postal_sort_key(record: EnrichedRecord) -> tuple[int, int]:
    # Records without a usable postal code rank equal and ahead of all others.
    value = postal_code_value(record)
    if value is None:
        return (0, 0)
    return (1, value)


def order_records(records: Iterable[EnrichedRecord]) -> list[EnrichedRecord]:
    return stable_sorted(records, key=postal_sort_key)


def snapshot_filename(run_date: date, prefix: str = "communesFR") -> str:
    return f"{prefix}_{day_month_year(run_date)}.json"


def render_snapshot(records: Iterable[EnrichedRecord]) -> str:
    return json.dumps([record.to_dict() for record in records], ensure_ascii=False, indent=1)


def write_snapshot(
    records: Iterable[EnrichedRecord],
    out_dir: Path,
    run_date: date,
    *,
    prefix: str = "communesFR",
) -> Path:
    """Order ``records`` and write them as one pretty-printed JSON array."""
    ordered = order_records(records)
    out_path = out_dir / snapshot_filename(run_date, prefix)
    try:
        rendered = render_snapshot(ordered)
    except (TypeError, ValueError) as exc:
        raise StageError(f"Unable to serialise snapshot: {exc}") from exc

    # Nothing touches disk unless serialisation succeeded.
    try:
        ensure_dir(out_dir)
        out_path.write_text(rendered, encoding="utf-8")
    except OSError as exc:
        raise StageError(f"Unable to write snapshot {out_path}: {exc}") from exc
    return out_path
