from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


Phase = Literal["lobby", "playing"]
StrokeMode = Literal["stroke", "fill"]
MessageKind = Literal["guess", "system"]

SYSTEM_AUTHOR = "System"


@dataclass
class Point:
    x: float
    y: float


@dataclass
class Stroke:
    id: str
    mode: StrokeMode = "stroke"
    color: str = "#f55a42"
    size: int = 4
    points: list[Point] = field(default_factory=list)


@dataclass
class ChatMessage:
    id: str
    type: MessageKind
    username: str
    text: str
    ts: int


@dataclass
class Room:
    id: str
    host: str
    phase: Phase = "lobby"
    drawer: str | None = None
    word: str = ""
    # Join order; first-seen casing is canonical.
    players: list[str] = field(default_factory=list)
    scores: dict[str, int] = field(default_factory=dict)
    # Kept in the order players guessed correctly.
    guessed_players: list[str] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)
    strokes: list[Stroke] = field(default_factory=list)
    created_at: int = 0

    def find_player(self, username: str) -> str | None:
        """Return the canonical name matching ``username`` case-insensitively."""
        wanted = (username or "").strip().casefold()
        if not wanted:
            return None
        for name in self.players:
            if name.casefold() == wanted:
                return name
        return None

    def is_drawer(self, username: str | None) -> bool:
        if not self.drawer or not username:
            return False
        return self.drawer.casefold() == username.strip().casefold()

    def is_host(self, username: str | None) -> bool:
        if not username:
            return False
        return self.host.casefold() == username.strip().casefold()
