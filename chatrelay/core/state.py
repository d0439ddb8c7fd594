# chatrelay/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from chatrelay.core.config import settings
from chatrelay.services.connection_manager import ConnectionManager
from chatrelay.services.event_router import EventRouter
from chatrelay.services.room_index import RoomIndex
from chatrelay.services.session_registry import SessionRegistry
from chatrelay.services.upload_gateway import UploadGateway

# Global singletons for app state
session_registry = SessionRegistry()
room_index = RoomIndex(prune_empty=settings.PRUNE_EMPTY_ROOMS)
event_router = EventRouter(session_registry, room_index, default_room=settings.DEFAULT_ROOM)
connection_manager = ConnectionManager(router=event_router)
upload_gateway = UploadGateway(
    settings.UPLOAD_DIR,
    url_prefix=settings.UPLOAD_URL_PREFIX,
    max_bytes=settings.MAX_UPLOAD_BYTES,
)

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)
