from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..game.service import RoomService

bp = Blueprint("rooms", __name__)


def get_service() -> RoomService:
    return current_app.extensions["sketchguess"]


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.get("/rooms")
def list_rooms():
    return jsonify({"rooms": get_service().list_rooms()})


@bp.post("/rooms")
def create_room():
    membership = get_service().create_room(_body().get("username"))
    return jsonify({**membership.snapshot, "username": membership.username}), 201


@bp.post("/rooms/join")
def join_room():
    data = _body()
    membership = get_service().join_room(data.get("roomId"), data.get("username"))
    return jsonify({**membership.snapshot, "username": membership.username})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    return jsonify(get_service().require_snapshot(room_id, request.args.get("username", "")))


@bp.post("/rooms/<room_id>/start")
def start_round(room_id: str):
    return jsonify(get_service().start_round(room_id, _body().get("username")))


@bp.post("/rooms/<room_id>/guess")
def submit_guess(room_id: str):
    data = _body()
    return jsonify(get_service().submit_guess(room_id, data.get("username"), data.get("text")))


@bp.post("/rooms/<room_id>/strokes")
def append_stroke(room_id: str):
    data = _body()
    stroke_id = get_service().append_stroke(room_id, data.get("username"), data.get("stroke"))
    return jsonify({"ok": True, "strokeId": stroke_id}), 201


@bp.post("/rooms/<room_id>/undo")
def undo_stroke(room_id: str):
    removed = get_service().undo_last_stroke(room_id, _body().get("username"))
    return jsonify({"ok": True, "removed": removed})


@bp.post("/rooms/<room_id>/clear")
def clear_strokes(room_id: str):
    get_service().clear_strokes(room_id, _body().get("username"))
    return jsonify({"ok": True})
