from __future__ import annotations

import threading
from pathlib import Path

import pytest

from communes_fr.common.errors import StageError
from communes_fr.common.models import EnrichedRecord, Failure
from communes_fr.pipeline.channels import Selector
from communes_fr.pipeline.collect import ErrorSink, collect


def test_collect_drains_both_channels_and_logs_failures(tmp_path: Path):
    selector = Selector()
    results = selector.channel(10, name="results")
    errors = selector.channel(2, name="errors")
    results.send(EnrichedRecord(name="Paris", postal_codes=("75001",)))
    errors.send(Failure(identifier="2A004"))
    results.send(EnrichedRecord(name="Lyon", postal_codes=("69001",)))
    errors.close()
    results.close()
    sink_path = tmp_path / "log-errors.txt"

    collection = collect(selector, results, errors, error_sink=ErrorSink(sink_path))

    assert [record.name for record in collection.records] == ["Paris", "Lyon"]
    assert collection.failures == [Failure(identifier="2A004")]
    assert collection.outcome_count == 3
    assert sink_path.read_text(encoding="utf-8") == "2A004\n"


def test_collect_waits_for_the_second_channel_to_close(tmp_path: Path):
    selector = Selector()
    results = selector.channel(1)
    errors = selector.channel(1)
    results.close()

    def late_errors():
        errors.send(Failure(identifier="97101"))
        errors.close()

    timer = threading.Timer(0.05, late_errors)
    timer.start()
    collection = collect(selector, results, errors, error_sink=ErrorSink(tmp_path / "log-errors.txt"))
    timer.join()

    assert collection.failures == [Failure(identifier="97101")]


def test_error_sink_appends_to_existing_log(tmp_path: Path):
    sink_path = tmp_path / "log-errors.txt"
    sink_path.write_text("01001\n", encoding="utf-8")

    ErrorSink(sink_path).write(Failure(identifier="75056"))

    assert sink_path.read_text(encoding="utf-8").splitlines() == ["01001", "75056"]


def test_error_sink_write_failure_is_fatal(tmp_path: Path):
    with pytest.raises(StageError):
        ErrorSink(tmp_path).write(Failure(identifier="75056"))


def test_collect_reports_progress_on_heartbeat(tmp_path: Path):
    selector = Selector()
    results = selector.channel(1)
    errors = selector.channel(1)
    ticks: list[int] = []
    results.send(EnrichedRecord(name="Paris"))

    def finish():
        results.close()
        errors.close()

    timer = threading.Timer(0.2, finish)
    timer.start()
    collect(
        selector,
        results,
        errors,
        error_sink=ErrorSink(tmp_path / "log-errors.txt"),
        heartbeat_seconds=0.02,
        on_progress=lambda _at, processed: ticks.append(processed),
    )
    timer.join()

    assert ticks
    assert set(ticks) == {1}


def test_collect_does_not_tick_when_done_before_heartbeat(tmp_path: Path):
    selector = Selector()
    results = selector.channel(1)
    errors = selector.channel(1)
    results.close()
    errors.close()
    ticks: list[int] = []

    collect(
        selector,
        results,
        errors,
        error_sink=ErrorSink(tmp_path / "log-errors.txt"),
        on_progress=lambda _at, processed: ticks.append(processed),
    )

    assert ticks == []
