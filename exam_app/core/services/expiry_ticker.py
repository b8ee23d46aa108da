"""Recurring background poll that drives time-based session transitions."""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Event, Thread

from exam_app.constants.exam_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class ExpiryTicker:
    """Calls ``on_tick`` every ``interval`` seconds until it returns False or is stopped.

    Stopping does not interrupt a tick already running; the callback must be
    safe to run once more after ``stop()``.
    """

    def __init__(
        self,
        on_tick: Callable[[], bool],
        interval: float = TICK_INTERVAL_SECONDS,
        name: str = "ExamExpiryTicker",
    ) -> None:
        if interval <= 0:
            raise ValueError("Tick interval must be positive.")
        self._on_tick = on_tick
        self._interval = interval
        self._stopped = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()

    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            if not self._on_tick():
                self._stopped.set()
        logger.debug("Expiry ticker %s stopped", self._thread.name)
