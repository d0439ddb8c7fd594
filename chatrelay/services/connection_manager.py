# chatrelay/services/connection_manager.py

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from chatrelay.services.event_router import EventRouter, Outbound

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One accepted WebSocket plus its outbound queue and writer task."""

    id: str
    websocket: WebSocket
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)
    writer: Optional[asyncio.Task] = None


# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Owns the lifecycle of every live WebSocket connection.

    Inbound events are handed to the EventRouter synchronously; the
    resulting fan-out is pushed onto each recipient's own queue and
    written out by that recipient's writer task. Nobody awaits another
    connection's socket, so a slow or stuck client only delays itself.

    Data Structures:
        connections: Maps connection_id -> Connection
                     Example: {"5f0c...": Connection(websocket, outbox, writer)}

    Lifecycle:
        1. connect() accepts the socket and assigns an id (no session yet)
        2. dispatch() routes each inbound event
        3. disconnect() runs the router's cleanup exactly once, however
           many times the transport reports the closure
    """

    def __init__(self, router: EventRouter) -> None:
        self.router = router
        self.connections: Dict[str, Connection] = {}

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection.

        Returns:
            The opaque connection id used for routing.

        Note:
            The connection is not in any room until it sends ``join``.
        """
        await websocket.accept()

        connection_id = uuid.uuid4().hex
        connection = Connection(id=connection_id, websocket=websocket)
        connection.writer = asyncio.create_task(self._pump(connection))
        self.connections[connection_id] = connection

        logger.info("✓ Connection %s opened. Total: %d", connection_id, len(self.connections))
        return connection_id

    def dispatch(self, connection_id: str, event: str, data: Any = None) -> int:
        """
        Route one inbound event and queue its fan-out.

        Returns:
            Number of frames queued.
        """
        if connection_id not in self.connections:
            return 0  # Connection already closed
        return self.deliver(self.router.handle(connection_id, event, data))

    def deliver(self, outbounds: Iterable[Outbound]) -> int:
        """
        Queue each outbound frame for every recipient that is still connected.

        Fire-and-forget: frames are not acknowledged and recipients that
        have gone away are skipped.
        """
        queued = 0
        for outbound in outbounds:
            frame = outbound.frame()
            for recipient in outbound.recipients:
                connection = self.connections.get(recipient)
                if connection is None:
                    continue
                connection.outbox.put_nowait(frame)
                queued += 1
        return queued

    def disconnect(self, connection_id: str) -> bool:
        """
        Handle WebSocket disconnection and cleanup.

        Returns:
            True on the first call for a connection, False on repeats.

        Cleanup:
            1. Stop tracking the connection
            2. Let the router remove the session and notify the room
            3. Cancel this connection's writer (frames already queued to
               other connections are untouched)
        """
        connection = self.connections.pop(connection_id, None)
        if connection is None:
            return False

        self.deliver(self.router.disconnect(connection_id))

        if connection.writer is not None and connection.writer is not _current_task():
            connection.writer.cancel()

        logger.info("✗ Connection %s closed. Total: %d", connection_id, len(self.connections))
        return True

    async def shutdown(self) -> None:
        """Cancel all writer tasks; used when the application stops."""
        writers = [c.writer for c in self.connections.values() if c.writer is not None]
        for connection_id in list(self.connections):
            self.disconnect(connection_id)
        for writer in writers:
            writer.cancel()
        if writers:
            await asyncio.gather(*writers, return_exceptions=True)

    async def _pump(self, connection: Connection) -> None:
        """Write queued frames to one socket until it fails or is cancelled."""
        while True:
            frame = await connection.outbox.get()
            try:
                await connection.websocket.send_json(frame)
            except Exception as e:
                logger.warning("Send to %s failed: %s", connection.id, e)
                self.disconnect(connection.id)
                await self._close(connection)
                return

    async def _close(self, connection: Connection) -> None:
        """Close the socket so the client sees the drop and can reconnect."""
        try:
            await connection.websocket.close()
        except Exception as e:
            logger.debug("Close of %s failed: %s", connection.id, e)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
