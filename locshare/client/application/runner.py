"""
Application layer: recurring timers for the fan-out and retrieval pipelines.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


def backoff_delay(interval: float, failures: int, max_backoff: float) -> float:
    """``interval`` doubled per consecutive failure, capped at ``max_backoff``."""
    if failures <= 0:
        return interval
    return min(interval * 2**failures, max(max_backoff, interval))


class Runner:
    """Runs the two pipelines on their own cadence in daemon threads.

    Fan-out is single-flight: a tick that starts while the previous one is
    still running is skipped, never queued. Stopping only signals the loops;
    a cycle already in progress finishes on its own.
    """

    def __init__(
        self,
        fanout_job: Callable[[], Any],
        retrieval_job: Callable[[], Any],
        fanout_interval: float,
        retrieval_interval: float,
        max_backoff: float,
        on_error_callback: Callable[[Exception], None] | None = None,
    ):
        self.fanout_job = fanout_job
        self.retrieval_job = retrieval_job
        self.fanout_interval = fanout_interval
        self.retrieval_interval = retrieval_interval
        self.max_backoff = max_backoff
        self.on_error_callback = on_error_callback
        self._fanout_lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def fanout_tick(self) -> bool:
        """Run one fan-out unless one is already in flight.

        Returns False when the tick was skipped. Errors propagate to the
        caller; the background loop is the one that swallows them.
        """
        if not self._fanout_lock.acquire(blocking=False):
            logger.info("Previous location fan-out still running, skipping tick")
            return False
        try:
            self.fanout_job()
        finally:
            self._fanout_lock.release()
        return True

    def retrieval_tick(self) -> bool:
        self.retrieval_job()
        return True

    def _report(self, error: Exception) -> None:
        if not self.on_error_callback:
            return
        try:
            self.on_error_callback(error)
        except Exception:
            logger.exception("Error callback raised")

    def _loop(self, name: str, tick: Callable[[], bool], interval: float) -> None:
        failures = 0
        while not self._stop.is_set():
            try:
                tick()
            except Exception as e:
                failures += 1
                logger.exception("%s cycle failed (%d in a row)", name, failures)
                self._report(e)
            else:
                failures = 0
            delay = backoff_delay(interval, failures, self.max_backoff)
            if self._stop.wait(delay):
                break
        logger.info("%s loop stopped", name)

    def start_in_thread(self) -> None:
        """Start both loops in background threads."""
        if self.is_running:
            logger.warning("Runner is already running")
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._loop,
                args=("fanout", self.fanout_tick, self.fanout_interval),
                name="locshare-fanout",
                daemon=True,
            ),
            threading.Thread(
                target=self._loop,
                args=("retrieval", self.retrieval_tick, self.retrieval_interval),
                name="locshare-retrieval",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "Started fan-out every %ss and retrieval every %ss",
            self.fanout_interval,
            self.retrieval_interval,
        )

    def stop_thread(self, wait: bool = False, timeout: float | None = None) -> None:
        """Signal both loops to stop; optionally wait for in-flight cycles."""
        self._stop.set()
        if wait:
            for thread in self._threads:
                thread.join(timeout)
        logger.info("Runner stop requested")
