import os
from pathlib import Path

_DEFAULT_STORE_FILE = Path(__file__).resolve().parents[2] / ".runtime" / "rooms.json"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Empty means auto-detect (see server.create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Storage (in-memory, snapshotted to a JSON file; empty disables)
    ROOMS_STORE_FILE = os.environ.get("ROOMS_STORE_FILE", str(_DEFAULT_STORE_FILE))
    PERSIST_DEBOUNCE_MS = int(os.environ.get("PERSIST_DEBOUNCE_MS", "120"))

    # Game
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    MAX_STROKES = int(os.environ.get("MAX_STROKES", "800"))
    MAX_MESSAGES = int(os.environ.get("MAX_MESSAGES", "200"))
    CANVAS_WIDTH = int(os.environ.get("CANVAS_WIDTH", "760"))
    CANVAS_HEIGHT = int(os.environ.get("CANVAS_HEIGHT", "520"))
