from __future__ import annotations

import threading
import time

import pytest

from communes_fr.pipeline.channels import CLOSED, Channel, ChannelClosed, Selector


def test_select_returns_buffered_items_before_closure():
    selector = Selector()
    channel = selector.channel(2, name="results")
    channel.send("a")
    channel.close()

    first = selector.select([channel], timeout=1)
    second = selector.select([channel], timeout=1)

    assert first.value == "a"
    assert first.closed is False
    assert second.value is CLOSED
    assert second.closed is True


def test_select_times_out_when_nothing_is_ready():
    selector = Selector()
    channel = selector.channel(1)

    assert selector.select([channel], timeout=0.01) is None


def test_select_alternates_between_ready_channels():
    selector = Selector()
    results = selector.channel(3, name="results")
    errors = selector.channel(3, name="errors")
    for value in ("r1", "r2"):
        results.send(value)
    for value in ("e1", "e2"):
        errors.send(value)

    seen = [selector.select([results, errors], timeout=1).value for _ in range(4)]

    assert seen == ["r1", "e1", "r2", "e2"]


def test_select_rejects_foreign_channels():
    selector = Selector()
    with pytest.raises(ValueError):
        selector.select([Channel(1)], timeout=0)


def test_send_blocks_while_channel_is_full():
    selector = Selector()
    channel = selector.channel(1)
    channel.send("first")
    delivered = threading.Event()

    def producer():
        channel.send("second")
        delivered.set()

    thread = threading.Thread(target=producer, daemon=True)
    thread.start()
    time.sleep(0.05)
    assert not delivered.is_set()

    assert selector.select([channel], timeout=1).value == "first"
    assert delivered.wait(timeout=2)
    assert selector.select([channel], timeout=1).value == "second"
    thread.join(timeout=2)


def test_select_wakes_up_on_send_from_another_thread():
    selector = Selector()
    channel = selector.channel(1)
    timer = threading.Timer(0.05, channel.send, args=("late",))
    timer.start()

    selected = selector.select([channel], timeout=2)

    assert selected.value == "late"
    timer.join()


def test_channel_rejects_double_close_and_send_after_close():
    channel = Channel(1, name="errors")
    channel.close()

    with pytest.raises(ChannelClosed):
        channel.close()
    with pytest.raises(ChannelClosed):
        channel.send("x")
    assert channel.closed is True


def test_channel_capacity_must_be_positive():
    with pytest.raises(ValueError):
        Channel(0)
