"""JSON snapshots of the room store.

The file is a durability aid only. The in-memory store stays authoritative and
keeps serving if the disk is missing, read-only or full.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any

from ..errors import TransientIOError
from ..game.models import SYSTEM_AUTHOR, ChatMessage, Room
from ..game.store import RoomStore, normalize_room_id
from ..game.strokes import sanitize_stroke
from ..utils.scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)

STORAGE_FILE_VERSION = 1


def now_ms() -> int:
    return int(time.time() * 1000)


def room_to_record(room: Room) -> dict:
    return {
        "id": room.id,
        "phase": room.phase,
        "host": room.host,
        "drawer": room.drawer,
        "word": room.word,
        "players": list(room.players),
        "scores": dict(room.scores),
        "guessedPlayers": list(room.guessed_players),
        "messages": [
            {"id": m.id, "type": m.type, "username": m.username, "text": m.text, "ts": m.ts}
            for m in room.messages
        ],
        "strokes": [
            {
                "id": s.id,
                "mode": s.mode,
                "color": s.color,
                "size": s.size,
                "points": [{"x": p.x, "y": p.y} for p in s.points],
            }
            for s in room.strokes
        ],
        "createdAt": room.created_at,
    }


def _finite_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return int(number)


def _normalize_messages(raw_messages: Any) -> list[ChatMessage]:
    if not isinstance(raw_messages, list):
        return []

    messages: list[ChatMessage] = []
    for raw in raw_messages:
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("text") or "").strip()
        if not text:
            continue
        raw_id = raw.get("id")
        messages.append(
            ChatMessage(
                id=raw_id if isinstance(raw_id, str) and raw_id else f"msg_{uuid.uuid4().hex[:12]}",
                type="system" if raw.get("type") == "system" else "guess",
                username=str(raw.get("username") or "").strip() or SYSTEM_AUTHOR,
                text=text,
                ts=_finite_int(raw.get("ts"), now_ms()),
            )
        )
    return messages


def normalize_persisted_room(raw: Any, canvas_width: float, canvas_height: float) -> Room | None:
    """Rebuild a room from a stored record, or None if it is unusable."""
    if not isinstance(raw, dict):
        return None

    room_id = normalize_room_id(raw.get("id"))
    host = str(raw.get("host") or raw.get("creator") or "").strip()
    if not room_id or not host:
        return None

    players: list[str] = []
    seen: set[str] = set()
    raw_players = raw.get("players") if isinstance(raw.get("players"), list) else []
    for candidate in raw_players:
        name = str(candidate or "").strip()
        if name and name.casefold() not in seen:
            seen.add(name.casefold())
            players.append(name)
    if host.casefold() not in seen:
        players.insert(0, host)

    room = Room(id=room_id, host=host, players=players)
    # The host keeps its casing from the player list if one was stored.
    room.host = room.find_player(host) or host

    raw_scores = raw.get("scores") if isinstance(raw.get("scores"), dict) else {}
    lowered_scores = {str(k).strip().casefold(): v for k, v in raw_scores.items()}
    for name in players:
        room.scores[name] = max(0, _finite_int(lowered_scores.get(name.casefold()), 0))

    raw_guessed = raw.get("guessedPlayers") if isinstance(raw.get("guessedPlayers"), list) else []
    for candidate in raw_guessed:
        name = room.find_player(str(candidate or ""))
        if name and name not in room.guessed_players:
            room.guessed_players.append(name)

    room.messages = _normalize_messages(raw.get("messages"))

    raw_strokes = raw.get("strokes") if isinstance(raw.get("strokes"), list) else []
    for raw_stroke in raw_strokes:
        stroke = sanitize_stroke(raw_stroke, canvas_width, canvas_height)
        if stroke is not None:
            room.strokes.append(stroke)

    room.drawer = room.find_player(str(raw.get("drawer") or ""))
    word = raw.get("word") if isinstance(raw.get("word"), str) else ""
    if raw.get("phase") == "playing" and word.strip():
        room.phase = "playing"
        room.word = word
    else:
        room.phase = "lobby"
        room.word = ""
        room.drawer = None

    room.created_at = _finite_int(raw.get("createdAt"), now_ms())
    return room


class RoomFileStorage:
    """Reads and writes the versioned rooms document."""

    def __init__(self, path: str | os.PathLike[str], canvas_width: float = 760, canvas_height: float = 520) -> None:
        self.path = Path(path)
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height

    def read(self) -> list[Room]:
        try:
            raw_text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise TransientIOError(f"cannot read {self.path}: {exc}") from exc

        try:
            document = json.loads(raw_text)
        except ValueError as exc:
            self._move_aside()
            raise TransientIOError(f"corrupt rooms file {self.path}: {exc}") from exc

        if not isinstance(document, dict):
            self._move_aside()
            raise TransientIOError(f"unexpected rooms document in {self.path}")

        version = document.get("version", STORAGE_FILE_VERSION)
        if version != STORAGE_FILE_VERSION:
            self._move_aside()
            raise TransientIOError(f"unsupported rooms file version {version!r}")

        raw_rooms = document.get("rooms") if isinstance(document.get("rooms"), list) else []
        rooms: list[Room] = []
        for raw_room in raw_rooms:
            room = normalize_persisted_room(raw_room, self.canvas_width, self.canvas_height)
            if room is None:
                logger.warning("dropping invalid persisted room entry in %s", self.path)
                continue
            rooms.append(room)
        return rooms

    def _move_aside(self) -> None:
        """Rename an unusable file so the next write cannot overwrite it."""
        backup = self.path.with_name(f"{self.path.name}.{now_ms()}.bak")
        try:
            os.replace(self.path, backup)
        except OSError:
            logger.warning("cannot move unusable rooms file %s aside", self.path, exc_info=True)
            return
        logger.warning("moved unusable rooms file to %s", backup)

    def write(self, rooms: list[dict]) -> None:
        payload = {"version": STORAGE_FILE_VERSION, "savedAt": now_ms(), "rooms": rooms}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".rooms-", suffix=".tmp", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise TransientIOError(f"cannot write {self.path}: {exc}") from exc


class RoomPersistence:
    """Debounced snapshots of a ``RoomStore``; a no-op when ``storage`` is None."""

    def __init__(
        self,
        store: RoomStore,
        storage: RoomFileStorage | None,
        scheduler: Scheduler,
        debounce_sec: float = 0.12,
    ) -> None:
        self.store = store
        self.storage = storage
        self._debouncer = Debouncer(debounce_sec, self.write_now, scheduler)

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def load(self) -> int:
        if self.storage is None:
            return 0
        try:
            rooms = self.storage.read()
        except TransientIOError:
            logger.warning("starting with an empty room store", exc_info=True)
            return 0
        self.store.replace_all(rooms)
        logger.info("loaded %d room(s) from %s", len(rooms), self.storage.path)
        return len(rooms)

    def schedule(self) -> None:
        if self.storage is None:
            return
        self._debouncer.schedule()

    def flush(self) -> bool:
        return self._debouncer.flush()

    def write_now(self) -> bool:
        if self.storage is None:
            return False
        with self.store.lock:
            records = [room_to_record(room) for room in self.store.list_rooms()]
        try:
            self.storage.write(records)
        except TransientIOError:
            logger.warning("room persistence failed", exc_info=True)
            return False
        return True
