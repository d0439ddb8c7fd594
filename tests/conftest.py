from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chatrelay.core import state
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.event_router import EventRouter
from chatrelay.services.room_index import RoomIndex
from chatrelay.services.session_registry import SessionRegistry


class FakeWebSocket:
    """Stands in for a Starlette WebSocket in connection manager tests."""

    def __init__(self, *, fail: bool = False, gate: asyncio.Event | None = None) -> None:
        self.accepted = False
        self.closed = False
        self.sent: list[dict[str, Any]] = []
        self.fail = fail
        self.gate = gate

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.sent]


async def settle(rounds: int = 20) -> None:
    """Give writer tasks a chance to drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def rooms() -> RoomIndex:
    return RoomIndex()


@pytest.fixture
def router(sessions: SessionRegistry, rooms: RoomIndex) -> EventRouter:
    return EventRouter(sessions, rooms)


@pytest.fixture
def app_state(monkeypatch: pytest.MonkeyPatch) -> ConnectionManager:
    """Swap the process-wide singletons for fresh ones and return the manager."""
    sessions = SessionRegistry()
    rooms = RoomIndex()
    router = EventRouter(sessions, rooms)
    manager = ConnectionManager(router)

    monkeypatch.setattr(state, "session_registry", sessions)
    monkeypatch.setattr(state, "room_index", rooms)
    monkeypatch.setattr(state, "event_router", router)
    monkeypatch.setattr(state, "connection_manager", manager)
    return manager
