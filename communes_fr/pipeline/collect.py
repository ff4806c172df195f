"""Single consumer draining the result and error channels."""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Callable

from communes_fr.common.errors import StageError
from communes_fr.common.fs import append_line
from communes_fr.common.models import Collection, Failure
from communes_fr.common.time_utils import utc_now
from communes_fr.pipeline.channels import Channel, Selector

ProgressCallback = Callable[[datetime, int], None]


class ErrorSink:
    """Append-only failure log, one identifier per line."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def write(self, failure: Failure) -> None:
        try:
            append_line(self.path, failure.identifier)
        except OSError as exc:
            raise StageError(f"Unable to append to error log {self.path}: {exc}") from exc


def collect(
    selector: Selector,
    results: Channel,
    errors: Channel,
    *,
    error_sink: ErrorSink,
    heartbeat_seconds: float = 900.0,
    on_progress: ProgressCallback | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Collection:
    """Drain ``results`` and ``errors`` until both are closed, in either order.

    Every ``heartbeat_seconds`` the number of records received so far is
    reported to ``on_progress`` together with the current UTC time.
    """
    collection = Collection()
    open_channels = [results, errors]
    next_tick = clock() + heartbeat_seconds

    while open_channels:
        selected = selector.select(open_channels, timeout=max(next_tick - clock(), 0.0))
        if selected is None:
            if on_progress is not None:
                on_progress(utc_now(), len(collection.records))
            next_tick = clock() + heartbeat_seconds
            continue

        if selected.closed:
            open_channels.remove(selected.channel)
        elif selected.channel is results:
            collection.records.append(selected.value)
        else:
            error_sink.write(selected.value)
            collection.failures.append(selected.value)

    return collection
