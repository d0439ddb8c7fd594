# chatrelay/services/session_registry.py

from __future__ import annotations

from typing import Dict, Optional

from chatrelay.models.models import Session


class SessionRegistry:
    """
    Maps a live connection id to its Session (username + current room).

    A connection with no entry here has not joined yet. ``get`` returns
    ``None`` for that case and callers treat it as a no-op, never an error:
    events can legitimately arrive before a join or right after a disconnect.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def put(self, connection_id: str, username: str, room: str) -> Session:
        """Create or overwrite the session for ``connection_id``."""
        session = Session(id=connection_id, username=username, room=room)
        self._sessions[connection_id] = session
        return session

    def get(self, connection_id: str) -> Optional[Session]:
        return self._sessions.get(connection_id)

    def set_room(self, connection_id: str, room: str) -> None:
        session = self._sessions.get(connection_id)
        if session is not None:
            session.room = room

    def remove(self, connection_id: str) -> None:
        self._sessions.pop(connection_id, None)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
