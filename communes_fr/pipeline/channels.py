"""Bounded closable channels and a multiplexed wait over several of them.

Channels that should be waited on together must share one
``threading.Condition``; :func:`select` blocks on that condition until one of
the channels yields an item, reports that it is closed, or the timeout elapses.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Sequence


class ChannelClosed(Exception):
    """Raised when sending on, or closing, a channel that is already closed."""


class _Empty:
    pass


_EMPTY = _Empty()


class Channel:
    def __init__(self, capacity: int, *, name: str = "", condition: threading.Condition | None = None) -> None:
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self.name = name
        self.condition = condition or threading.Condition()
        self._items: deque[Any] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self.condition:
            return self._closed

    def send(self, item: Any) -> None:
        """Block while the channel is full."""
        with self.condition:
            while not self._closed and len(self._items) >= self.capacity:
                self.condition.wait()
            if self._closed:
                raise ChannelClosed(f"send on closed channel {self.name!r}")
            self._items.append(item)
            self.condition.notify_all()

    def close(self) -> None:
        with self.condition:
            if self._closed:
                raise ChannelClosed(f"channel {self.name!r} closed twice")
            self._closed = True
            self.condition.notify_all()

    def _poll(self) -> Any:
        # Caller holds self.condition. Buffered items drain before closure is reported.
        if self._items:
            item = self._items.popleft()
            self.condition.notify_all()
            return item
        if self._closed:
            return CLOSED
        return _EMPTY


class _Closed:
    def __repr__(self) -> str:
        return "CLOSED"


CLOSED = _Closed()


@dataclass(frozen=True)
class Selected:
    channel: Channel
    value: Any

    @property
    def closed(self) -> bool:
        return self.value is CLOSED


class Selector:
    """Round-robin ``select`` so a busy channel cannot starve the others."""

    def __init__(self, condition: threading.Condition | None = None) -> None:
        self.condition = condition or threading.Condition()
        self._offset = 0

    def channel(self, capacity: int, *, name: str = "") -> Channel:
        return Channel(capacity, name=name, condition=self.condition)

    def select(self, channels: Sequence[Channel], timeout: float | None = None) -> Selected | None:
        """Wait for an item or a closure on any of ``channels``; ``None`` on timeout."""
        if not channels:
            raise ValueError("select needs at least one channel")
        for channel in channels:
            if channel.condition is not self.condition:
                raise ValueError(f"channel {channel.name!r} does not belong to this selector")

        deadline = None if timeout is None else time.monotonic() + timeout
        with self.condition:
            while True:
                count = len(channels)
                for step in range(count):
                    channel = channels[(self._offset + step) % count]
                    value = channel._poll()
                    if value is not _EMPTY:
                        self._offset = (self._offset + step + 1) % count
                        return Selected(channel=channel, value=value)

                if deadline is None:
                    self.condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self.condition.wait(remaining)
