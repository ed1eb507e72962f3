from __future__ import annotations

from threading import Lock
from typing import NamedTuple


class Interest(NamedTuple):
    room_id: str
    viewer: str


class ChannelRegistry:
    """Which push channel (socket sid) watches which room, and as whom."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._by_channel: dict[str, Interest] = {}
        self._by_room: dict[str, dict[str, str]] = {}

    def register(self, channel_id: str, room_id: str, viewer: str) -> Interest | None:
        """Declare interest, replacing any earlier one. Returns the replaced interest."""
        with self._lock:
            previous = self._drop(channel_id)
            self._by_channel[channel_id] = Interest(room_id, viewer)
            self._by_room.setdefault(room_id, {})[channel_id] = viewer
            return previous

    def unregister(self, channel_id: str) -> Interest | None:
        with self._lock:
            return self._drop(channel_id)

    def interest(self, channel_id: str) -> Interest | None:
        with self._lock:
            return self._by_channel.get(channel_id)

    def interested(self, room_id: str) -> list[tuple[str, str]]:
        """(channel_id, viewer) pairs for ``room_id``, in registration order."""
        with self._lock:
            return list(self._by_room.get(room_id, {}).items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_channel)

    def _drop(self, channel_id: str) -> Interest | None:
        previous = self._by_channel.pop(channel_id, None)
        if previous is not None:
            watchers = self._by_room.get(previous.room_id)
            if watchers is not None:
                watchers.pop(channel_id, None)
                if not watchers:
                    del self._by_room[previous.room_id]
        return previous
