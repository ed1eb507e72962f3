from __future__ import annotations

import re

from .models import ChatMessage, Room, Stroke

MASK_CHAR = "_"

_ALNUM_RE = re.compile(r"[^\W_]", re.UNICODE)


def mask_word(word: str) -> str:
    """Replace every letter and digit, keeping length, spaces and punctuation."""
    return _ALNUM_RE.sub(MASK_CHAR, word or "")


def _message_dict(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "type": message.type,
        "username": message.username,
        "text": message.text,
        "ts": message.ts,
    }


def _stroke_dict(stroke: Stroke) -> dict:
    return {
        "id": stroke.id,
        "mode": stroke.mode,
        "color": stroke.color,
        "size": stroke.size,
        "points": [{"x": p.x, "y": p.y} for p in stroke.points],
    }


def serialize_room(room: Room, viewer: str | None = None) -> dict:
    """Project ``room`` for one viewer.

    Only the drawer sees the real word. Players are ordered by score, highest
    first; equal scores keep join order. Everything returned is a fresh copy.
    """
    is_drawer = room.is_drawer(viewer)

    if room.phase == "playing":
        word_display = room.word if is_drawer else mask_word(room.word)
    else:
        word_display = ""

    players = [{"name": name, "score": room.scores.get(name, 0)} for name in room.players]
    players.sort(key=lambda p: -p["score"])

    return {
        "roomId": room.id,
        "phase": room.phase,
        "host": room.host,
        "drawer": room.drawer,
        "players": players,
        "wordDisplay": word_display,
        "canDraw": is_drawer,
        "guessedPlayers": list(room.guessed_players),
        "messages": [_message_dict(m) for m in room.messages],
        "strokes": [_stroke_dict(s) for s in room.strokes],
    }


def room_summary(room: Room) -> dict:
    return {"roomId": room.id, "phase": room.phase, "playerCount": len(room.players)}
