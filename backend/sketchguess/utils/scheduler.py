from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class _BackgroundCall:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerScheduler:
    """Runs delayed callbacks as Socket.IO background tasks.

    ``start_background_task`` and ``sleep`` follow the server's async mode, so
    the callback lands on a green thread under eventlet and a native one under
    threading.
    """

    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        handle = _BackgroundCall()

        def _worker() -> None:
            self.socketio.sleep(max(0.0, delay))
            if handle.cancelled:
                return
            callback()

        self.socketio.start_background_task(_worker)
        return handle


class Debouncer:
    """Coalesces bursts of ``schedule()`` calls into one ``callback`` run.

    Each call cancels the pending run and reschedules it ``delay`` seconds out.
    """

    def __init__(self, delay: float, callback: Callable[[], None], scheduler: Scheduler) -> None:
        self.delay = delay
        self._callback = callback
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._handle: Cancellable | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def schedule(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._handle = self._scheduler.call_later(self.delay, lambda: self._fire(generation))

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._generation += 1

    def flush(self) -> bool:
        """Run a pending callback immediately. Returns whether one was pending."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            self._handle = None
            self._generation += 1
        self._run()
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost the race with cancel()/schedule() must not run.
            if generation != self._generation:
                return
            self._handle = None
        self._run()

    def _run(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("debounced callback failed")
