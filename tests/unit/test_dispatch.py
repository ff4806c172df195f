from __future__ import annotations

import random
import threading

import pytest

from communes_fr.common.models import EnrichedRecord, Failure
from communes_fr.pipeline.channels import Selector
from communes_fr.pipeline.dispatch import Dispatcher


def _drain(selector, results, errors, timeout=5.0):
    records, failures = [], []
    open_channels = [results, errors]
    while open_channels:
        selected = selector.select(open_channels, timeout=timeout)
        assert selected is not None, "dispatcher never closed its channels"
        if selected.closed:
            open_channels.remove(selected.channel)
        elif selected.channel is results:
            records.append(selected.value)
        else:
            failures.append(selected.value)
    return records, failures


def _worker(identifier: str):
    if identifier.startswith("bad"):
        return Failure(identifier=identifier)
    return EnrichedRecord(name=identifier, postal_codes=(identifier,))


def test_dispatcher_routes_one_outcome_per_identifier_and_closes_channels():
    selector = Selector()
    results = selector.channel(10, name="results")
    errors = selector.channel(2, name="errors")
    delays: list[float] = []
    dispatcher = Dispatcher(_worker, results, errors, sleep=delays.append, rng=random.Random(7))
    identifiers = ["01001", "bad-1", "75056", "bad-2", "13055"]

    dispatcher.start(identifiers)
    records, failures = _drain(selector, results, errors)
    dispatcher.join(timeout=5)

    assert sorted(record.name for record in records) == ["01001", "13055", "75056"]
    assert sorted(failure.identifier for failure in failures) == ["bad-1", "bad-2"]
    assert len(delays) == len(identifiers)
    assert all(0.035 <= delay < 0.075 for delay in delays)
    assert results.closed and errors.closed


def test_dispatcher_closes_channels_for_empty_input():
    selector = Selector()
    results = selector.channel(1)
    errors = selector.channel(1)

    Dispatcher(_worker, results, errors, sleep=lambda _s: None).start([])

    assert _drain(selector, results, errors) == ([], [])


def test_dispatcher_turns_worker_crash_into_failure():
    selector = Selector()
    results = selector.channel(1)
    errors = selector.channel(1)

    def crashing(identifier):
        raise RuntimeError(f"boom {identifier}")

    Dispatcher(crashing, results, errors, sleep=lambda _s: None).start(["75056"])

    assert _drain(selector, results, errors) == ([], [Failure(identifier="75056")])


def test_dispatcher_respects_max_in_flight():
    selector = Selector()
    results = selector.channel(50)
    errors = selector.channel(1)
    lock = threading.Lock()
    state = {"current": 0, "peak": 0}
    release = threading.Event()

    def slow_worker(identifier):
        with lock:
            state["current"] += 1
            state["peak"] = max(state["peak"], state["current"])
        release.wait(timeout=0.05)
        with lock:
            state["current"] -= 1
        return EnrichedRecord(name=identifier)

    dispatcher = Dispatcher(slow_worker, results, errors, max_in_flight=2, sleep=lambda _s: None)
    dispatcher.start([str(i) for i in range(8)])
    records, _failures = _drain(selector, results, errors)

    assert len(records) == 8
    assert state["peak"] <= 2


def test_next_delay_uses_configured_bounds():
    dispatcher = Dispatcher(
        _worker,
        Selector().channel(1),
        Selector().channel(1),
        stagger_ms=(10, 10),
        rng=random.Random(1),
    )
    assert dispatcher.next_delay() == pytest.approx(0.010)


@pytest.mark.parametrize("kwargs", [{"stagger_ms": (75, 35)}, {"stagger_ms": (-1, 5)}, {"max_in_flight": 0}])
def test_dispatcher_rejects_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        Dispatcher(_worker, Selector().channel(1), Selector().channel(1), **kwargs)


def test_dispatcher_cannot_start_twice():
    selector = Selector()
    dispatcher = Dispatcher(_worker, selector.channel(1), selector.channel(1), sleep=lambda _s: None)
    dispatcher.start([])
    with pytest.raises(RuntimeError):
        dispatcher.start([])
