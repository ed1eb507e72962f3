import pytest

from sketchguess.game.service import RoomService
from sketchguess.game.store import RoomStore
from sketchguess.server import create_app
from sketchguess.storage.persistence import RoomFileStorage, RoomPersistence

SECRET_WORD = "ice cream"


class _ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._handles = []

    def call_later(self, delay, callback):
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds):
        self.now += seconds
        due = [h for h in self.pending if h.when <= self.now]
        self._handles = [h for h in self.pending if h.when > self.now]
        for handle in sorted(due, key=lambda h: h.when):
            handle.callback()


@pytest.fixture()
def secret_word():
    return SECRET_WORD


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def store_file(tmp_path):
    return tmp_path / "runtime" / "rooms.json"


@pytest.fixture()
def store():
    return RoomStore()


@pytest.fixture()
def persistence(store, store_file, scheduler):
    return RoomPersistence(store, RoomFileStorage(store_file), debounce_sec=0.12, scheduler=scheduler)


@pytest.fixture()
def service(store, persistence):
    return RoomService(store, persistence=persistence, word_picker=lambda: SECRET_WORD)


@pytest.fixture()
def notifications(service):
    seen = []
    service.updates.subscribe(seen.append)
    return seen


@pytest.fixture()
def lobby(service):
    """Room hosted by Ann with Bob joined; returns the room id."""
    room_id = service.create_room("Ann").snapshot["roomId"]
    service.join_room(room_id, "Bob")
    return room_id


@pytest.fixture()
def playing(service, lobby):
    """``lobby`` with Cid joined and the round started by Ann."""
    service.join_room(lobby, "Cid")
    service.start_round(lobby, "Ann")
    return lobby


@pytest.fixture()
def flask_app(store_file, scheduler):
    class TestConfig:
        TESTING = True
        SECRET_KEY = "test-secret"
        CORS_ORIGINS = "*"
        TRUST_PROXY_HEADERS = False
        SOCKETIO_ASYNC_MODE = "threading"
        ROOMS_STORE_FILE = str(store_file)
        PERSIST_DEBOUNCE_MS = 120
        MIN_PLAYERS = 2
        MAX_STROKES = 800
        MAX_MESSAGES = 200
        CANVAS_WIDTH = 760
        CANVAS_HEIGHT = 520

    app, _socketio = create_app(TestConfig, scheduler=scheduler, word_picker=lambda: SECRET_WORD)
    yield app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    socketio = flask_app.extensions["socketio"]
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
