"""Staggered fan-out of one enrichment worker per commune."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Iterable

from communes_fr.common.logging import log_error_event
from communes_fr.common.models import EnrichedRecord, Failure
from communes_fr.pipeline.channels import Channel

Worker = Callable[[str], "EnrichedRecord | Failure"]


class Dispatcher:
    """Launch one worker thread per identifier and close both channels once all have reported.

    Each launch is preceded by a random pause in ``[low, high)`` milliseconds taken
    on the dispatching thread, so requests reach the registry at a bounded pace.
    ``max_in_flight`` optionally caps the number of workers that have been launched
    but not yet delivered their outcome; ``None`` leaves the fan-out unbounded.
    """

    def __init__(
        self,
        worker: Worker,
        results: Channel,
        errors: Channel,
        *,
        stagger_ms: tuple[float, float] = (35, 75),
        max_in_flight: int | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        low, high = stagger_ms
        if low < 0 or high < low:
            raise ValueError(f"invalid stagger bounds: {stagger_ms}")
        if max_in_flight is not None and max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self.worker = worker
        self.results = results
        self.errors = errors
        self.stagger_ms = (low, high)
        self.max_in_flight = max_in_flight
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.logger = logger
        self._slots = threading.BoundedSemaphore(max_in_flight) if max_in_flight else None
        self._thread: threading.Thread | None = None

    def next_delay(self) -> float:
        """Seconds to wait before the next launch."""
        low, high = self.stagger_ms
        return (low + self.rng.random() * (high - low)) / 1000.0

    def start(self, identifiers: Iterable[str]) -> threading.Thread:
        if self._thread is not None:
            raise RuntimeError("dispatcher already started")
        codes = list(identifiers)
        self._thread = threading.Thread(
            target=self.run,
            args=(codes,),
            name="communes-dispatcher",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self, identifiers: Iterable[str]) -> None:
        workers: list[threading.Thread] = []
        try:
            for identifier in identifiers:
                self.sleep(self.next_delay())
                if self._slots is not None:
                    self._slots.acquire()
                thread = threading.Thread(
                    target=self._run_one,
                    args=(identifier,),
                    name=f"commune-{identifier}",
                    daemon=True,
                )
                thread.start()
                workers.append(thread)
        finally:
            # Completion barrier: every launched worker has sent its single message.
            for thread in workers:
                thread.join()
            self.errors.close()
            self.results.close()

    def _run_one(self, identifier: str) -> None:
        try:
            try:
                outcome = self.worker(identifier)
            except Exception:
                if self.logger is not None:
                    log_error_event(
                        self.logger,
                        f"worker crashed for commune {identifier}",
                        stage="fan-out",
                        event="WORKER_CRASH",
                        status="error",
                        error_code="UNEXPECTED_ERROR",
                    )
                outcome = Failure(identifier=identifier)

            if isinstance(outcome, Failure):
                self.errors.send(outcome)
            else:
                self.results.send(outcome)
        finally:
            if self._slots is not None:
                self._slots.release()
