import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def _wants_eventlet() -> bool:
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return False
    return os.environ.get("SOCKETIO_ASYNC_MODE", "").strip() in ("", "eventlet")


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) == "1"


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    if _wants_eventlet():
        import eventlet

        eventlet.monkey_patch()

    from sketchguess.config import Config
    from sketchguess.server import create_app

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", Config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app, socketio = create_app()
    try:
        socketio.run(
            app,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8080")),
            debug=_env_flag("FLASK_DEBUG", "1"),
            allow_unsafe_werkzeug=_env_flag("ALLOW_UNSAFE_WERKZEUG", "1"),
            use_reloader=_env_flag("FLASK_USE_RELOADER", "0"),
        )
    finally:
        # Write out whatever is still inside the debounce window.
        app.extensions["sketchguess"].persistence.flush()


if __name__ == "__main__":
    main()
