"""Tick source for the session countdown.

The session never schedules itself; something outside calls ``tick()`` once
per interval. :class:`Ticker` is that something for live sessions.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .errors import SessionClosed

log = logging.getLogger(__name__)


class Ticker:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread.

    Invocations never overlap: the next wait starts only after the callback
    returned. ``stop()`` may be called any number of times, from any thread,
    including from inside the callback.
    """

    def __init__(self, callback: Callable[[], object], interval: float = 1.0, name: str = "quiz-ticker"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._callback = callback
        self._interval = float(interval)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._name = name
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> "Ticker":
        if self._thread is not None:
            raise RuntimeError("ticker already started")
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=self._interval * 2)

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._callback()
            except SessionClosed:
                log.debug("%s: session closed, stopping", self._name)
                self._stop.set()
                break
            self.ticks += 1


__all__ = ["Ticker"]
