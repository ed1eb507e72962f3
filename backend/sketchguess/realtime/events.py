from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

logger = logging.getLogger(__name__)

RoomListener = Callable[[str], None]


class RoomUpdates:
    """Synchronous room-updated notifications.

    ``publish`` runs every listener before returning, so a push for a mutation
    always goes out before the command that caused it returns.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._listeners: list[RoomListener] = []

    def subscribe(self, listener: RoomListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, room_id: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(room_id)
            except Exception:
                logger.exception("room update listener failed for %s", room_id)
