"""Cancellable periodic task.

Each periodic concern (balance refresh, quote refresh) owns exactly one
``RepeatingTask``. Cancelling wakes the worker immediately and never blocks
on a callback that is already running; no new callback starts afterwards.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class RepeatingTask:
    def __init__(
        self,
        callback: Callable[[], None],
        interval_seconds: float,
        name: str = "repeating-task",
        run_immediately: bool = True,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.name = name
        self.run_immediately = run_immediately
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and not self._stop_event.is_set():
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name=self.name, daemon=True
            )
            self._thread.start()
        logger.debug("Started %s (every %.1fs)", self.name, self.interval_seconds)

    def cancel(self, wait: bool = False, join_timeout: float = 2.0) -> None:
        """Stop the worker. ``wait`` joins it; callers on the UI thread must not wait."""
        with self._lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=join_timeout)
        logger.debug("Cancelled %s", self.name)

    def _run(self, stop_event: threading.Event) -> None:
        if self.run_immediately:
            self._invoke(stop_event)
        while not stop_event.wait(self.interval_seconds):
            self._invoke(stop_event)

    def _invoke(self, stop_event: threading.Event) -> None:
        if stop_event.is_set():
            return
        try:
            self.callback()
        except Exception as e:
            logger.error("Error in %s: %s", self.name, e)
