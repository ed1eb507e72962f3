from __future__ import annotations

import logging
import secrets
import time
import uuid
from typing import Any, Callable, NamedTuple

from ..errors import NotFoundError, PolicyError, ValidationError
from ..realtime.events import RoomUpdates
from .models import SYSTEM_AUTHOR, ChatMessage, MessageKind, Room
from .scoring import DRAWER_POINTS, guesser_points, is_correct_guess
from .snapshot import room_summary, serialize_room
from .store import RoomStore, normalize_room_id
from .strokes import append_bounded, new_stroke_id, sanitize_stroke
from .words import pick_word

logger = logging.getLogger(__name__)

ROOM_ID_LENGTH = 6
# Excludes 0, O, 1 and I.
ROOM_ID_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

MAX_NAME_LENGTH = 32
MAX_GUESS_LENGTH = 200
MAX_MESSAGES = 200


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_room_id() -> str:
    return "".join(secrets.choice(ROOM_ID_CHARS) for _ in range(ROOM_ID_LENGTH))


def build_message(kind: MessageKind, username: str, text: str) -> ChatMessage:
    return ChatMessage(id=f"msg_{uuid.uuid4().hex[:12]}", type=kind, username=username, text=text, ts=now_ms())


def requested_name(raw: Any) -> str:
    name = str(raw or "").strip()
    if not name:
        raise ValidationError("invalid_username", "Username is required.")
    return name


def clean_username(raw: Any) -> str:
    """Validate a name about to be admitted to a room."""
    name = requested_name(raw)
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("invalid_username", f"Username must be at most {MAX_NAME_LENGTH} characters.")
    if any(ord(ch) < 32 for ch in name):
        raise ValidationError("invalid_username", "Username contains control characters.")
    return name


class Membership(NamedTuple):
    username: str
    snapshot: dict


class RoomService:
    """Every command that reads or mutates rooms goes through here.

    Each command runs entirely under the store lock: validate, mutate, schedule
    a save, notify listeners. A rejected command raises before touching state.
    """

    def __init__(
        self,
        store: RoomStore,
        persistence=None,
        updates: RoomUpdates | None = None,
        *,
        word_picker: Callable[[], str] = pick_word,
        min_players: int = 2,
        max_strokes: int = 800,
        max_messages: int = MAX_MESSAGES,
        canvas_width: int = 760,
        canvas_height: int = 520,
    ) -> None:
        self.store = store
        self.persistence = persistence
        self.updates = updates or RoomUpdates()
        self.word_picker = word_picker
        self.min_players = min_players
        self.max_strokes = max_strokes
        self.max_messages = max_messages
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height

    # -- registry ---------------------------------------------------------

    def create_room(self, username: Any) -> Membership:
        name = clean_username(username)
        with self.store.lock:
            room_id = generate_room_id()
            while room_id in self.store:
                room_id = generate_room_id()

            room = Room(
                id=room_id,
                host=name,
                players=[name],
                scores={name: 0},
                created_at=now_ms(),
            )
            self.store.add(room)
            logger.info("room %s created by %s", room_id, name)
            self._commit(room)
            return Membership(name, serialize_room(room, name))

    def join_room(self, room_id: Any, username: Any) -> Membership:
        requested = requested_name(username)
        with self.store.lock:
            room = self._require_room(room_id)

            existing = room.find_player(requested)
            if existing is not None:
                return Membership(existing, serialize_room(room, existing))

            name = clean_username(requested)
            room.players.append(name)
            room.scores.setdefault(name, 0)
            logger.info("%s joined room %s", name, room.id)
            self._commit(room)
            return Membership(name, serialize_room(room, name))

    def get_snapshot(self, room_id: Any, viewer: Any = "") -> dict | None:
        with self.store.lock:
            room = self.store.get(normalize_room_id(room_id))
            if room is None:
                return None
            return serialize_room(room, str(viewer or "").strip())

    def require_snapshot(self, room_id: Any, viewer: Any = "") -> dict:
        with self.store.lock:
            room = self._require_room(room_id)
            return serialize_room(room, str(viewer or "").strip())

    def list_rooms(self) -> list[dict]:
        with self.store.lock:
            return [room_summary(room) for room in self.store.list_rooms()]

    # -- phase & turn -----------------------------------------------------

    def start_round(self, room_id: Any, username: Any) -> dict:
        with self.store.lock:
            room = self._require_room(room_id)
            name = requested_name(username)

            if len(room.players) < self.min_players:
                raise PolicyError("not_enough_players", f"At least {self.min_players} players are required.")
            player = self._require_player(room, name)
            if not room.is_host(player):
                raise PolicyError("only_host", "Only the host can start the game.")
            if room.phase != "lobby":
                raise PolicyError("round_already_started", "The round has already started.")

            room.phase = "playing"
            room.drawer = room.find_player(room.host) or room.host
            room.word = self.word_picker()
            room.strokes = []
            room.guessed_players = []
            room.messages = [build_message("system", SYSTEM_AUTHOR, "Round started. Start guessing!")]
            logger.info("room %s started, drawer=%s", room.id, room.drawer)
            self._commit(room)
            return serialize_room(room, player)

    # -- guesses ----------------------------------------------------------

    def submit_guess(self, room_id: Any, username: Any, text: Any) -> dict:
        with self.store.lock:
            room = self._require_room(room_id)
            name = requested_name(username)
            guess = str(text or "").strip()
            if not guess:
                raise ValidationError("invalid_guess", "Guess text is required.")
            if len(guess) > MAX_GUESS_LENGTH:
                raise ValidationError("invalid_guess", f"Guess must be at most {MAX_GUESS_LENGTH} characters.")

            self._require_playing(room)
            player = self._require_player(room, name)
            if room.is_drawer(player):
                raise PolicyError("drawer_cannot_guess", "Drawer cannot send guesses.")

            self._add_message(room, build_message("guess", player, guess))

            if is_correct_guess(guess, room.word) and player not in room.guessed_players:
                room.guessed_players.append(player)
                points = guesser_points(len(room.guessed_players))
                room.scores[player] = room.scores.get(player, 0) + points
                if room.drawer:
                    room.scores[room.drawer] = room.scores.get(room.drawer, 0) + DRAWER_POINTS
                self._add_message(
                    room, build_message("system", SYSTEM_AUTHOR, f"{player} guessed the word! +{points} points.")
                )

            self._commit(room)
            return serialize_room(room, player)

    # -- stroke log -------------------------------------------------------

    def append_stroke(self, room_id: Any, username: Any, stroke: Any) -> str:
        with self.store.lock:
            room = self._require_room(room_id)
            self._require_drawer(room, username, "Only the drawer can draw.")

            # Client-supplied ids are never trusted for live strokes.
            entry = sanitize_stroke(stroke, self.canvas_width, self.canvas_height, stroke_id=new_stroke_id())
            if entry is None:
                raise ValidationError("invalid_stroke", "Stroke requires at least two points.")

            append_bounded(room.strokes, entry, self.max_strokes)
            self._commit(room)
            return entry.id

    def undo_last_stroke(self, room_id: Any, username: Any) -> bool:
        with self.store.lock:
            room = self._require_room(room_id)
            self._require_drawer(room, username, "Only the drawer can undo.")

            if not room.strokes:
                return False
            room.strokes.pop()
            self._commit(room)
            return True

    def clear_strokes(self, room_id: Any, username: Any) -> None:
        with self.store.lock:
            room = self._require_room(room_id)
            self._require_drawer(room, username, "Only the drawer can clear the canvas.")

            room.strokes = []
            self._commit(room)

    # -- helpers ----------------------------------------------------------

    def _require_room(self, room_id: Any) -> Room:
        rid = normalize_room_id(room_id)
        if not rid:
            raise ValidationError("invalid_room", "Room ID is required.")
        room = self.store.get(rid)
        if room is None:
            raise NotFoundError()
        return room

    @staticmethod
    def _require_player(room: Room, username: str) -> str:
        player = room.find_player(username)
        if player is None:
            raise PolicyError("not_in_room", "You are not in this room.")
        return player

    @staticmethod
    def _require_playing(room: Room) -> None:
        if room.phase != "playing":
            raise PolicyError("round_not_started", "The round has not started.")

    def _require_drawer(self, room: Room, username: Any, message: str) -> str:
        self._require_playing(room)
        player = self._require_player(room, str(username or ""))
        if not room.is_drawer(player):
            raise PolicyError("only_drawer", message)
        return player

    def _add_message(self, room: Room, message: ChatMessage) -> None:
        append_bounded(room.messages, message, self.max_messages)

    def _commit(self, room: Room) -> None:
        if self.persistence is not None:
            self.persistence.schedule()
        self.updates.publish(room.id)
