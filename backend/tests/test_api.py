def _create(client, username="Ann"):
    res = client.post("/api/rooms", json={"username": username})
    assert res.status_code == 201
    return res.get_json()


def _started_room(client):
    room_id = _create(client)["roomId"]
    client.post("/api/rooms/join", json={"roomId": room_id, "username": "Bob"})
    res = client.post(f"/api/rooms/{room_id}/start", json={"username": "Ann"})
    assert res.status_code == 200
    return room_id


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}


def test_create_room(client):
    data = _create(client, "  Ann  ")
    assert data["username"] == "Ann"
    assert data["host"] == "Ann"
    assert data["phase"] == "lobby"
    assert data["players"] == [{"name": "Ann", "score": 0}]


def test_create_room_requires_username(client):
    res = client.post("/api/rooms", json={"username": "  "})
    assert res.status_code == 400
    assert res.get_json()["error"] == "invalid_username"


def test_join_resolves_existing_name(client):
    room_id = _create(client)["roomId"]

    res = client.post("/api/rooms/join", json={"roomId": room_id.lower(), "username": "ANN"})

    assert res.status_code == 200
    data = res.get_json()
    assert data["username"] == "Ann"
    assert len(data["players"]) == 1


def test_join_unknown_room(client):
    res = client.post("/api/rooms/join", json={"roomId": "NOPE22", "username": "Bob"})
    assert res.status_code == 404
    assert res.get_json()["error"] == "room_not_found"


def test_join_without_body(client):
    res = client.post("/api/rooms/join", data="not json", content_type="text/plain")
    assert res.status_code == 400


def test_list_rooms(client):
    room_id = _create(client)["roomId"]
    res = client.get("/api/rooms")
    assert res.get_json() == {"rooms": [{"roomId": room_id, "phase": "lobby", "playerCount": 1}]}


def test_fetch_room_is_viewer_scoped(client, secret_word):
    room_id = _started_room(client)

    drawer_view = client.get(f"/api/rooms/{room_id}?username=ann").get_json()
    guesser_view = client.get(f"/api/rooms/{room_id}?username=Bob").get_json()

    assert drawer_view["wordDisplay"] == secret_word
    assert drawer_view["canDraw"] is True
    assert guesser_view["wordDisplay"] == "___ _____"
    assert guesser_view["canDraw"] is False


def test_fetch_unknown_room(client):
    res = client.get("/api/rooms/NOPE22?username=Ann")
    assert res.status_code == 404


def test_non_host_start_is_forbidden(client):
    room_id = _create(client)["roomId"]
    client.post("/api/rooms/join", json={"roomId": room_id, "username": "Bob"})

    res = client.post(f"/api/rooms/{room_id}/start", json={"username": "Bob"})

    assert res.status_code == 403
    assert res.get_json()["error"] == "only_host"
    assert client.get(f"/api/rooms/{room_id}").get_json()["phase"] == "lobby"


def test_guess_flow(client, secret_word):
    room_id = _started_room(client)

    res = client.post(f"/api/rooms/{room_id}/guess", json={"username": "Bob", "text": secret_word})

    assert res.status_code == 200
    data = res.get_json()
    assert {p["name"]: p["score"] for p in data["players"]} == {"Bob": 120, "Ann": 15}
    assert data["players"][0]["name"] == "Bob"
    assert data["guessedPlayers"] == ["Bob"]


def test_drawer_guess_is_forbidden(client, secret_word):
    room_id = _started_room(client)
    res = client.post(f"/api/rooms/{room_id}/guess", json={"username": "Ann", "text": secret_word})
    assert res.status_code == 403
    assert res.get_json()["error"] == "drawer_cannot_guess"


def test_stroke_undo_clear(client):
    room_id = _started_room(client)
    stroke = {"mode": "stroke", "color": "#111111", "size": 5, "points": [{"x": 1, "y": 1}, {"x": 5, "y": 5}]}

    res = client.post(f"/api/rooms/{room_id}/strokes", json={"username": "Ann", "stroke": stroke})
    assert res.status_code == 201
    assert res.get_json()["ok"] is True

    res = client.post(f"/api/rooms/{room_id}/strokes", json={"username": "Bob", "stroke": stroke})
    assert res.status_code == 403

    res = client.post(f"/api/rooms/{room_id}/strokes", json={"username": "Ann", "stroke": {"points": []}})
    assert res.status_code == 400

    strokes = client.get(f"/api/rooms/{room_id}?username=Bob").get_json()["strokes"]
    assert len(strokes) == 1
    assert strokes[0]["points"] == [{"x": 1.0, "y": 1.0}, {"x": 5.0, "y": 5.0}]

    assert client.post(f"/api/rooms/{room_id}/undo", json={"username": "Ann"}).get_json() == {
        "ok": True,
        "removed": True,
    }
    assert client.post(f"/api/rooms/{room_id}/undo", json={"username": "Ann"}).get_json()["removed"] is False

    client.post(f"/api/rooms/{room_id}/strokes", json={"username": "Ann", "stroke": stroke})
    res = client.post(f"/api/rooms/{room_id}/clear", json={"username": "Ann"})
    assert res.get_json() == {"ok": True}
    assert client.get(f"/api/rooms/{room_id}").get_json()["strokes"] == []


def test_state_survives_app_restart(client, flask_app, store_file, scheduler, secret_word):
    from sketchguess.server import create_app

    room_id = _started_room(client)
    client.post(f"/api/rooms/{room_id}/guess", json={"username": "Bob", "text": secret_word})
    before = client.get(f"/api/rooms/{room_id}?username=Bob").get_json()
    flask_app.extensions["sketchguess"].persistence.flush()

    class RestartConfig:
        TESTING = True
        SOCKETIO_ASYNC_MODE = "threading"
        ROOMS_STORE_FILE = str(store_file)
        PERSIST_DEBOUNCE_MS = 120
        MIN_PLAYERS = 2
        MAX_STROKES = 800
        MAX_MESSAGES = 200
        CANVAS_WIDTH = 760
        CANVAS_HEIGHT = 520

    restarted, _socketio = create_app(RestartConfig, scheduler=scheduler)
    after = restarted.test_client().get(f"/api/rooms/{room_id}?username=Bob").get_json()

    assert after == before
