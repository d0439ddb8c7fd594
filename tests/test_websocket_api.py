from __future__ import annotations

import json

from fastapi import FastAPI
from fastapi.testclient import TestClient

from chatrelay.api import websocket as websocket_module
from chatrelay.api.websocket import frame_text, parse_frame


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(websocket_module.router)
    return app


def _join(ws, username: str, room: str = "general") -> None:
    ws.send_json({"event": "join", "data": {"username": username, "room": room}})


def test_parse_frame_rejects_garbage():
    assert parse_frame("not json") is None
    assert parse_frame("[1, 2]") is None
    assert parse_frame('{"data": {}}') is None
    assert parse_frame('{"event": "typing"}') == ("typing", None)
    assert parse_frame('{"event": "join", "data": {"username": "A"}}') == ("join", {"username": "A"})


def test_alice_and_bob_in_general(app_state):
    with TestClient(_app()) as client:
        with client.websocket_connect("/ws") as alice:
            _join(alice, "Alice")
            first = alice.receive_json()
            assert first["event"] == "room-users"
            assert [u["username"] for u in first["data"]] == ["Alice"]

            with client.websocket_connect("/ws") as bob:
                _join(bob, "Bob")

                snapshot = bob.receive_json()
                assert snapshot["event"] == "room-users"
                assert sorted(u["username"] for u in snapshot["data"]) == ["Alice", "Bob"]

                notice = alice.receive_json()
                assert notice["event"] == "user-joined"
                assert notice["data"]["username"] == "Bob"

                bob.send_json({"event": "send-message", "data": {"text": "hi"}})
                # Bob's next frame is his own message, so he never saw a user-joined for himself
                own = bob.receive_json()
                assert own["event"] == "new-message"
                assert own["data"]["text"] == "hi"
                assert alice.receive_json() == own

            left = alice.receive_json()
            assert left["event"] == "user-left"
            assert left["data"]["username"] == "Bob"

    assert len(app_state.router.sessions) == 0
    assert app_state.connection_count == 0


def test_malformed_frames_do_not_break_the_connection(app_state):
    with TestClient(_app()) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{{{ not json")
            ws.send_json({"no": "event"})
            ws.send_json({"event": "launch-missiles"})
            ws.send_json({"event": "send-message", "data": {"text": "before join"}})

            _join(ws, "Alice", "lobby")
            frame = ws.receive_json()
            assert frame["event"] == "room-users"
            assert frame["data"][0]["room"] == "lobby"

            ws.send_json({"event": "send-message", "data": {"text": "after join"}})
            message = ws.receive_json()
            assert message["event"] == "new-message"
            assert message["data"]["text"] == "after join"


def test_switch_room_over_the_wire(app_state):
    with TestClient(_app()) as client:
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            _join(alice, "Alice", "general")
            alice.receive_json()
            _join(bob, "Bob", "general")
            bob.receive_json()
            alice.receive_json()  # user-joined Bob

            bob.send_json({"event": "switch-room", "data": "random"})
            snapshot = bob.receive_json()
            assert snapshot["event"] == "room-users"
            assert [u["username"] for u in snapshot["data"]] == ["Bob"]

            left = alice.receive_json()
            assert left["event"] == "user-left"
            assert left["data"]["username"] == "Bob"

            alice.send_json({"event": "typing"})
            bob.send_json({"event": "typing"})
            # Alice is alone in general now; Bob alone in random
            bob.send_json({"event": "send-message", "data": {"text": "echo"}})
            assert bob.receive_json()["data"]["text"] == "echo"


def test_frame_text_measures_utf8_bytes():
    text = "é" * 6  # 6 characters, 12 bytes

    assert frame_text({"type": "websocket.receive", "text": text}, max_bytes=12) == text
    assert frame_text({"type": "websocket.receive", "text": text}, max_bytes=11) is None
    assert frame_text({"type": "websocket.receive", "bytes": b"x" * 5}, max_bytes=4) is None


def test_frame_text_drops_invalid_utf8_bytes():
    assert frame_text({"type": "websocket.receive", "bytes": b"\xff\xfe{}"}, max_bytes=100) is None
    assert frame_text({"type": "websocket.receive", "bytes": '{"event": "typing"}'.encode()}, max_bytes=100) == (
        '{"event": "typing"}'
    )
    assert frame_text({"type": "websocket.receive"}, max_bytes=100) is None


def test_binary_frames_over_the_wire(app_state):
    with TestClient(_app()) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b'\xff{"event": "join", "data": {"username": "Mallory"}}')
            ws.send_bytes(json.dumps({"event": "join", "data": {"username": "Alice"}}).encode("utf-8"))

            frame = ws.receive_json()
            assert frame["event"] == "room-users"
            assert [u["username"] for u in frame["data"]] == ["Alice"]
