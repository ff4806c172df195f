"""Run summary report."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from communes_fr.common.fs import write_json
from communes_fr.common.models import Collection


def write_run_summary(
    data_dir: Path,
    *,
    run_id: str,
    run_date: date,
    identifier_count: int,
    collection: Collection,
    snapshot_path: Path,
    duration_ms: int,
) -> dict:
    status = "partial" if collection.failures else "success"
    payload = {
        "run_id": run_id,
        "run_date": run_date.isoformat(),
        "status": status,
        "counts": {
            "identifiers": identifier_count,
            "records": len(collection.records),
            "failures": len(collection.failures),
        },
        "snapshot": snapshot_path.name,
        "duration_ms": duration_ms,
    }
    write_json(data_dir / "run_meta" / f"{run_id}.summary.json", payload)
    return payload
