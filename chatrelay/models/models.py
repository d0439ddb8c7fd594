# chatrelay/models/models.py
from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used on every outbound event."""
    return datetime.now(timezone.utc).isoformat()


def new_message_id() -> str:
    """Nanosecond clock plus a random suffix; unique enough, not ordered."""
    return f"{time.time_ns()}-{secrets.token_hex(4)}"


# ============================================================================
# SESSION
# ============================================================================

class Session(BaseModel):
    id: str
    username: str = ""
    room: str


# ============================================================================
# INBOUND PAYLOADS
# ============================================================================

class JoinPayload(BaseModel):
    username: Optional[str] = ""
    room: Optional[str] = None

    @field_validator("username", "room", mode="before")
    @classmethod
    def scalars_as_text(cls, v: Any) -> Any:
        # Names are free-form; a numeric username is still a username
        if isinstance(v, (bool, int, float)):
            return str(v)
        return v


class SendMessagePayload(BaseModel):
    text: str = ""


class SendMediaPayload(BaseModel):
    url: str
    filename: str = ""
    originalname: str = ""
    mimetype: str = ""
    size: int = 0
    caption: Optional[str] = ""


# ============================================================================
# OUTBOUND PAYLOADS
# ============================================================================

class MediaInfo(BaseModel):
    url: str
    filename: str
    originalname: str
    mimetype: str
    size: int


class TextMessage(BaseModel):
    id: str = Field(default_factory=new_message_id)
    username: str
    text: str
    type: Literal["text"] = "text"
    timestamp: str = Field(default_factory=utc_timestamp)
    room: str


class MediaMessage(BaseModel):
    id: str = Field(default_factory=new_message_id)
    username: str
    type: Literal["media"] = "media"
    media: MediaInfo
    caption: str = ""
    timestamp: str = Field(default_factory=utc_timestamp)
    room: str


ChatMessage = Union[TextMessage, MediaMessage]


class PresenceNotice(BaseModel):
    """Body of ``user-joined`` / ``user-left``."""

    username: str
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)

    @classmethod
    def joined(cls, username: str) -> "PresenceNotice":
        return cls(username=username, message=f"{username} joined the chat")

    @classmethod
    def left(cls, username: str) -> "PresenceNotice":
        return cls(username=username, message=f"{username} left the chat")


class TypingNotice(BaseModel):
    username: str


# ============================================================================
# UPLOADS
# ============================================================================

class StoredFile(BaseModel):
    filename: str
    originalname: str
    size: int
    mimetype: str
    url: str


class UploadResponse(BaseModel):
    success: bool = True
    file: StoredFile
