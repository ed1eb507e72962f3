from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..errors import GameError
from ..game.service import RoomService
from ..game.store import normalize_room_id
from .channels import ChannelRegistry

logger = logging.getLogger(__name__)

INVALID_PAYLOAD = {"error": "invalid_payload", "message": "roomId and username are required."}


def register_socketio_handlers(socketio: SocketIO, service: RoomService, channels: ChannelRegistry) -> None:
    def _push_room_state(channel_id: str, room_id: str, viewer: str) -> bool:
        snapshot = service.get_snapshot(room_id, viewer)
        if snapshot is None:
            socketio.emit("room:missing", {"roomId": room_id}, to=channel_id)
            return False
        socketio.emit("room:snapshot", {"snapshot": snapshot}, to=channel_id)
        return True

    def _broadcast_room_state(room_id: str) -> None:
        # Each channel gets its own projection: the drawer's carries the word.
        for channel_id, viewer in channels.interested(room_id):
            try:
                _push_room_state(channel_id, room_id, viewer)
            except Exception:
                logger.exception("push to %s for room %s failed", channel_id, room_id)

    service.updates.subscribe(_broadcast_room_state)

    def _payload(data: Any) -> dict | None:
        if data is None:
            return {}
        return data if isinstance(data, dict) else None

    def _identity(payload: dict) -> tuple[str, str]:
        """roomId/username from the payload, defaulting to the channel's subscription."""
        interest = channels.interest(request.sid)
        room_id = normalize_room_id(payload.get("roomId"))
        username = str(payload.get("username") or "").strip()
        if interest is not None:
            room_id = room_id or interest.room_id
            username = username or interest.viewer
        return room_id, username

    def _run_command(data: Any, command: Callable[[dict, str, str], dict]) -> dict:
        payload = _payload(data)
        if payload is None:
            emit("room:error", INVALID_PAYLOAD)
            return {"ok": False, **INVALID_PAYLOAD}

        room_id, username = _identity(payload)
        try:
            result = command(payload, room_id, username)
        except GameError as exc:
            emit("room:error", exc.to_dict())
            return {"ok": False, **exc.to_dict()}
        return {"ok": True, **result}

    @socketio.on("room:subscribe")
    def room_subscribe(data=None):
        payload = _payload(data)
        room_id = normalize_room_id((payload or {}).get("roomId"))
        username = str((payload or {}).get("username") or "").strip()
        if not room_id or not username:
            emit("room:error", INVALID_PAYLOAD)
            return {"ok": False, **INVALID_PAYLOAD}

        channels.register(request.sid, room_id, username)
        found = _push_room_state(request.sid, room_id, username)
        return {"ok": found}

    @socketio.on("room:unsubscribe")
    def room_unsubscribe(data=None):
        channels.unregister(request.sid)
        return {"ok": True}

    @socketio.on("game:start")
    def game_start(data=None):
        return _run_command(
            data,
            lambda payload, room_id, username: {"snapshot": service.start_round(room_id, username)},
        )

    @socketio.on("guess:submit")
    def guess_submit(data=None):
        return _run_command(
            data,
            lambda payload, room_id, username: {
                "snapshot": service.submit_guess(room_id, username, payload.get("text"))
            },
        )

    @socketio.on("draw:stroke")
    def draw_stroke(data=None):
        return _run_command(
            data,
            lambda payload, room_id, username: {
                "strokeId": service.append_stroke(room_id, username, payload.get("stroke"))
            },
        )

    @socketio.on("draw:undo")
    def draw_undo(data=None):
        return _run_command(
            data,
            lambda payload, room_id, username: {"removed": service.undo_last_stroke(room_id, username)},
        )

    @socketio.on("draw:clear")
    def draw_clear(data=None):
        def _clear(payload: dict, room_id: str, username: str) -> dict:
            service.clear_strokes(room_id, username)
            return {}

        return _run_command(data, _clear)

    @socketio.on("*")
    def unknown_event(event, *args):
        emit("room:error", {"error": "unsupported_event", "message": f"Unsupported event {event!r}."})

    @socketio.on("disconnect")
    def on_disconnect(*args):
        channels.unregister(request.sid)

    @socketio.on_error_default
    def on_socket_error(exc):
        logger.exception("socket handler failed: %s", exc)
        emit("room:error", {"error": "internal_error", "message": "Unexpected server error."})
