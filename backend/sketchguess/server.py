from __future__ import annotations

import os
import sys
from typing import Callable

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .errors import GameError
from .game.service import RoomService
from .game.store import RoomStore
from .realtime.channels import ChannelRegistry
from .realtime.events import RoomUpdates
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .storage.persistence import RoomFileStorage, RoomPersistence
from .utils.scheduler import Scheduler, TimerScheduler


def _resolve_async_mode(configured: str) -> str:
    if configured:
        return configured
    # eventlet only where app.py can monkey-patch it.
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def build_room_service(
    app: Flask,
    scheduler: Scheduler,
    word_picker: Callable[[], str] | None = None,
) -> RoomService:
    store = RoomStore()

    store_file = app.config.get("ROOMS_STORE_FILE") or ""
    storage = None
    if store_file:
        storage = RoomFileStorage(
            store_file,
            canvas_width=app.config["CANVAS_WIDTH"],
            canvas_height=app.config["CANVAS_HEIGHT"],
        )
    persistence = RoomPersistence(
        store,
        storage,
        debounce_sec=app.config["PERSIST_DEBOUNCE_MS"] / 1000.0,
        scheduler=scheduler,
    )
    persistence.load()

    options = {}
    if word_picker is not None:
        options["word_picker"] = word_picker

    return RoomService(
        store,
        persistence=persistence,
        updates=RoomUpdates(),
        min_players=app.config["MIN_PLAYERS"],
        max_strokes=app.config["MAX_STROKES"],
        max_messages=app.config["MAX_MESSAGES"],
        canvas_width=app.config["CANVAS_WIDTH"],
        canvas_height=app.config["CANVAS_HEIGHT"],
        **options,
    )


def create_app(
    config_class=Config,
    scheduler: Scheduler | None = None,
    word_picker: Callable[[], str] | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = _resolve_async_mode(
        app.config.get("SOCKETIO_ASYNC_MODE") or os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    )

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    service = build_room_service(app, scheduler or TimerScheduler(socketio), word_picker=word_picker)
    app.extensions["sketchguess"] = service

    @app.errorhandler(GameError)
    def handle_game_error(exc: GameError):
        return jsonify(exc.to_dict()), exc.status_code

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service, ChannelRegistry())

    return app, socketio
