"""Snapshot run orchestration: reference load, listing, fan-out, collection, finalisation."""

from __future__ import annotations

import logging
import random
import time
from contextlib import contextmanager
from datetime import date, datetime
from functools import partial
from pathlib import Path
from typing import Callable, Iterator

from communes_fr.common.errors import ContractError
from communes_fr.common.http import HttpClient, RetryConfig, TimeoutConfig
from communes_fr.common.logging import log_event
from communes_fr.harvest.enrich import enrich_commune
from communes_fr.harvest.listing import list_commune_codes
from communes_fr.harvest.reference import load_reference_tables
from communes_fr.pipeline.channels import Selector
from communes_fr.pipeline.collect import ErrorSink, collect
from communes_fr.pipeline.dispatch import Dispatcher
from communes_fr.pipeline.finalize import write_snapshot
from communes_fr.pipeline.reports import write_run_summary


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@contextmanager
def _stage(logger: logging.Logger, run_id: str, stage: str) -> Iterator[None]:
    started = time.monotonic()
    log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
    yield
    log_event(
        logger,
        "stage end",
        run_id=run_id,
        stage=stage,
        event="STAGE_END",
        status="ok",
        duration_ms=_elapsed_ms(started),
    )


def build_http_client(config: dict) -> HttpClient:
    http_cfg = config["http"]
    return HttpClient(
        timeout=TimeoutConfig(
            connect=float(http_cfg["connect_timeout_seconds"]),
            read=float(http_cfg["read_timeout_seconds"]),
        ),
        retry=RetryConfig(max_attempts=int(http_cfg["max_attempts"])),
    )


def run_snapshot(
    config: dict,
    data_dir: Path,
    run_id: str,
    run_date: date,
    logger: logging.Logger,
    *,
    http_client: HttpClient | None = None,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Produce the dated commune snapshot and the run summary; return the summary."""
    started = time.monotonic()
    registry_cfg = config["registry"]
    dispatch_cfg = config["dispatch"]
    output_cfg = config["output"]

    owns_client = http_client is None
    client = http_client or build_http_client(config)
    try:
        with _stage(logger, run_id, "reference"):
            tables = load_reference_tables(client, registry_cfg)

        with _stage(logger, run_id, "listing"):
            identifiers = list_commune_codes(client, registry_cfg)
        total = len(identifiers)

        selector = Selector()
        results = selector.channel(int(dispatch_cfg["result_capacity"]), name="results")
        errors = selector.channel(int(dispatch_cfg["error_capacity"]), name="errors")
        low, high = dispatch_cfg["stagger_ms"]
        dispatcher = Dispatcher(
            partial(enrich_commune, client=client, registry_config=registry_cfg, tables=tables),
            results,
            errors,
            stagger_ms=(float(low), float(high)),
            max_in_flight=dispatch_cfg["max_in_flight"],
            rng=rng,
            sleep=sleep,
            logger=logger,
        )

        def report_progress(at: datetime, processed: int) -> None:
            log_event(
                logger,
                f"{processed} communes processed at {at.isoformat(timespec='seconds')}",
                run_id=run_id,
                stage="fan-out",
                event="PROGRESS",
                status="ok",
                processed=processed,
                total=total,
            )

        with _stage(logger, run_id, "fan-out"):
            dispatcher.start(identifiers)
            collection = collect(
                selector,
                results,
                errors,
                error_sink=ErrorSink(data_dir / output_cfg["error_log_filename"]),
                heartbeat_seconds=float(config["collect"]["heartbeat_seconds"]),
                on_progress=report_progress,
            )
            dispatcher.join()
    finally:
        if owns_client:
            client.close()

    if collection.outcome_count != total:
        raise ContractError(
            f"{collection.outcome_count} outcomes collected for {total} communes"
        )

    with _stage(logger, run_id, "finalize"):
        snapshot_path = write_snapshot(
            collection.records,
            data_dir,
            run_date,
            prefix=output_cfg["snapshot_prefix"],
        )

    summary = write_run_summary(
        data_dir,
        run_id=run_id,
        run_date=run_date,
        identifier_count=total,
        collection=collection,
        snapshot_path=snapshot_path,
        duration_ms=_elapsed_ms(started),
    )
    log_event(
        logger,
        f"snapshot written to {snapshot_path.name}",
        run_id=run_id,
        event="RUN_END",
        status=summary["status"],
        processed=len(collection.records),
        failed=len(collection.failures),
        total=total,
        duration_ms=summary["duration_ms"],
    )
    return summary
