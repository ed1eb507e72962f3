from __future__ import annotations

from collections.abc import Iterable
from threading import RLock

from .models import Room


def normalize_room_id(room_id: str | None) -> str:
    return str(room_id or "").strip().upper()


class RoomStore:
    """Owns every room record for the lifetime of the process.

    Commands hold ``lock`` for their whole check-mutate-notify sequence, so no
    two mutations interleave and readers never see a half-applied command.
    """

    def __init__(self) -> None:
        self.lock = RLock()
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room | None:
        with self.lock:
            return self._rooms.get(normalize_room_id(room_id))

    def add(self, room: Room) -> None:
        with self.lock:
            self._rooms[room.id] = room

    def replace_all(self, rooms: Iterable[Room]) -> None:
        with self.lock:
            self._rooms = {room.id: room for room in rooms}

    def list_rooms(self) -> list[Room]:
        with self.lock:
            return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        with self.lock:
            return isinstance(room_id, str) and normalize_room_id(room_id) in self._rooms

    def __len__(self) -> int:
        with self.lock:
            return len(self._rooms)
