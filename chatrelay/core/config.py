# chatrelay/core/config.py
import os
from typing import List
from dotenv import load_dotenv


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Setup environment variables.
        - PORT the port the server listens on (default 3000)
        - DEFAULT_ROOM the room a join lands in when the client names none
        - PRUNE_EMPTY_ROOMS drop a room entry once its last member leaves
        - UPLOAD_DIR / UPLOAD_URL_PREFIX where uploads are stored and served from
        - MAX_UPLOAD_BYTES per-file ceiling for POST /upload
        - MAX_EVENT_BYTES largest accepted frame on the event channel
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))

    DEFAULT_ROOM: str = os.getenv("DEFAULT_ROOM", "general")
    PRUNE_EMPTY_ROOMS: bool = _as_bool(os.getenv("PRUNE_EMPTY_ROOMS", "true"))

    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    UPLOAD_URL_PREFIX: str = os.getenv("UPLOAD_URL_PREFIX", "/uploads").rstrip("/")
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))
    MAX_EVENT_BYTES: int = int(os.getenv("MAX_EVENT_BYTES", str(100_000_000)))

    PUBLIC_DIR: str = os.getenv("PUBLIC_DIR", "public")
    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]

settings = Settings()
