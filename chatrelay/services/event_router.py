# chatrelay/services/event_router.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional
import logging

from pydantic import ValidationError

from chatrelay.models.models import (
    JoinPayload,
    MediaInfo,
    MediaMessage,
    PresenceNotice,
    SendMediaPayload,
    SendMessagePayload,
    TextMessage,
    TypingNotice,
)
from chatrelay.services.room_index import RoomIndex
from chatrelay.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

# Outbound event names
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
ROOM_USERS = "room-users"
NEW_MESSAGE = "new-message"
USER_TYPING = "user-typing"
USER_STOPPED_TYPING = "user-stopped-typing"


@dataclass(frozen=True)
class Outbound:
    """One event to push to a fixed set of connections."""

    recipients: FrozenSet[str]
    event: str
    data: Any

    def frame(self) -> Dict[str, Any]:
        return {"event": self.event, "data": self.data}


# ============================================================================
# EVENT ROUTER
# ============================================================================

class EventRouter:
    """
    Decides who sees what.

    Every inbound client event goes through exactly one handler here. A
    handler reads the session, mutates the registry/index if the event
    calls for it, and returns the fan-out as a list of ``Outbound``
    values. Handlers never await, so on a single event loop no two
    handlers interleave and each one is an atomic step; the recipient
    sets are frozen snapshots taken at that moment.

    Fan-out rules:
        - send-message / send-media go to the whole room, sender included
          (clients do not echo their own messages locally)
        - every other notice excludes the acting connection

    Events from a connection without a session (not joined yet, or
    already gone) are dropped silently.
    """

    def __init__(
        self,
        sessions: SessionRegistry,
        rooms: RoomIndex,
        default_room: str = "general",
    ) -> None:
        self.sessions = sessions
        self.rooms = rooms
        self.default_room = default_room
        self.messages_relayed = 0

        self._handlers: Dict[str, Callable[[str, Any], List[Outbound]]] = {
            "join": self._on_join,
            "send-message": self._on_send_message,
            "send-media": self._on_send_media,
            "typing": lambda cid, _data: self.typing(cid),
            "stop-typing": lambda cid, _data: self.stop_typing(cid),
            "switch-room": self._on_switch_room,
        }

    @property
    def events(self) -> List[str]:
        return list(self._handlers)

    def handle(self, connection_id: str, event: str, data: Any = None) -> List[Outbound]:
        """
        Dispatch one inbound event by name.

        Unknown events and payloads that fail validation are logged and
        ignored; nothing is reported back to the client.
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("Ignoring unknown event '%s' from %s", event, connection_id)
            return []
        try:
            return handler(connection_id, data)
        except ValidationError as e:
            logger.debug(
                "Ignoring malformed '%s' from %s: %d error(s)", event, connection_id, e.error_count()
            )
            return []

    # ------------------------------------------------------------------
    # Payload adapters
    # ------------------------------------------------------------------

    def _on_join(self, connection_id: str, data: Any) -> List[Outbound]:
        payload = JoinPayload.model_validate(data if data is not None else {})
        return self.join(connection_id, payload.username, payload.room)

    def _on_send_message(self, connection_id: str, data: Any) -> List[Outbound]:
        payload = SendMessagePayload.model_validate(data if data is not None else {})
        return self.send_message(connection_id, payload.text)

    def _on_send_media(self, connection_id: str, data: Any) -> List[Outbound]:
        payload = SendMediaPayload.model_validate(data if data is not None else {})
        return self.send_media(connection_id, payload)

    def _on_switch_room(self, connection_id: str, data: Any) -> List[Outbound]:
        # Accept the bare room name or {"room": name}
        new_room = data.get("room") if isinstance(data, dict) else data
        if not isinstance(new_room, str) or not new_room:
            logger.debug("Ignoring switch-room without a room name from %s", connection_id)
            return []
        return self.switch_room(connection_id, new_room)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def join(self, connection_id: str, username: Optional[str], room: Optional[str] = None) -> List[Outbound]:
        """
        Register the connection under ``username`` in ``room``.

        A second join from the same connection is a fresh join: the old
        membership is dropped first so the connection is never in two rooms.
        """
        username = username or ""
        room = room or self.default_room

        previous = self.sessions.get(connection_id)
        if previous is not None:
            self.rooms.remove(previous.room, connection_id)

        self.sessions.put(connection_id, username, room)
        self.rooms.add(room, connection_id)
        members = self.rooms.members(room)

        logger.info("→ %s joined '%s' (%d members)", username, room, len(members))

        return [
            Outbound(members - {connection_id}, USER_JOINED, PresenceNotice.joined(username).model_dump()),
            Outbound(frozenset({connection_id}), ROOM_USERS, self.room_users(room)),
        ]

    def send_message(self, connection_id: str, text: str) -> List[Outbound]:
        session = self.sessions.get(connection_id)
        if session is None:
            return []

        message = TextMessage(username=session.username, text=text, room=session.room)
        self.messages_relayed += 1
        logger.info("Message in '%s' from %s", session.room, session.username)
        return [Outbound(self.rooms.members(session.room), NEW_MESSAGE, message.model_dump())]

    def send_media(self, connection_id: str, payload: SendMediaPayload) -> List[Outbound]:
        session = self.sessions.get(connection_id)
        if session is None:
            return []

        message = MediaMessage(
            username=session.username,
            media=MediaInfo(
                url=payload.url,
                filename=payload.filename,
                originalname=payload.originalname,
                mimetype=payload.mimetype,
                size=payload.size,
            ),
            caption=payload.caption or "",
            room=session.room,
        )
        self.messages_relayed += 1
        logger.info("Media shared in '%s': %s", session.room, payload.originalname)
        return [Outbound(self.rooms.members(session.room), NEW_MESSAGE, message.model_dump())]

    def typing(self, connection_id: str) -> List[Outbound]:
        return self._notify_others(connection_id, USER_TYPING)

    def stop_typing(self, connection_id: str) -> List[Outbound]:
        return self._notify_others(connection_id, USER_STOPPED_TYPING)

    def switch_room(self, connection_id: str, new_room: str) -> List[Outbound]:
        """
        Move a joined connection from its current room to ``new_room``.

        Old room hears ``user-left``, new room hears ``user-joined``, and
        the switcher gets the new room's member list.
        """
        session = self.sessions.get(connection_id)
        if session is None:
            return []

        old_room = session.room
        username = session.username

        self.rooms.remove(old_room, connection_id)
        self.sessions.set_room(connection_id, new_room)
        self.rooms.add(new_room, connection_id)

        left_audience = self.rooms.members(old_room) - {connection_id}
        joined_audience = self.rooms.members(new_room) - {connection_id}

        logger.info("⇄ %s switched '%s' -> '%s'", username, old_room, new_room)

        return [
            Outbound(left_audience, USER_LEFT, PresenceNotice.left(username).model_dump()),
            Outbound(joined_audience, USER_JOINED, PresenceNotice.joined(username).model_dump()),
            Outbound(frozenset({connection_id}), ROOM_USERS, self.room_users(new_room)),
        ]

    def disconnect(self, connection_id: str) -> List[Outbound]:
        """
        Tear down the session of a closed connection.

        Idempotent: a second call finds no session and returns no fan-out,
        so duplicate close signals from the transport yield one ``user-left``.
        """
        session = self.sessions.get(connection_id)
        if session is None:
            return []

        # Resolve audience and username before the session disappears
        room = session.room
        username = session.username
        audience = self.rooms.members(room) - {connection_id}

        self.rooms.remove(room, connection_id)
        self.sessions.remove(connection_id)

        logger.info("✗ %s left '%s' (%d remaining)", username, room, len(audience))
        return [Outbound(audience, USER_LEFT, PresenceNotice.left(username).model_dump())]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def room_users(self, room: str) -> List[Dict[str, Any]]:
        """Resolved sessions of a room's members; ids with no session are skipped."""
        users = []
        for member_id in self.rooms.members(room):
            session = self.sessions.get(member_id)
            if session is not None:
                users.append(session.model_dump())
        return users

    def _notify_others(self, connection_id: str, event: str) -> List[Outbound]:
        session = self.sessions.get(connection_id)
        if session is None:
            return []
        audience = self.rooms.members(session.room) - {connection_id}
        return [Outbound(audience, event, TypingNotice(username=session.username).model_dump())]
