# chatrelay/services/upload_gateway.py

from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path
from typing import Awaitable, Protocol

from chatrelay.models.models import StoredFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB read size while streaming to disk

ALLOWED_EXTENSIONS = {
    ".jpeg", ".jpg", ".png", ".gif",
    ".mp4", ".mov", ".avi",
    ".mp3", ".wav",
    ".pdf", ".doc", ".docx", ".txt",
}

ALLOWED_MIME_TYPES = {
    "image/jpeg", "image/jpg", "image/png", "image/gif",
    "video/mp4", "video/quicktime", "video/x-msvideo", "video/avi",
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/x-wav", "audio/wave",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}


class UploadRejected(ValueError):
    """The file is not accepted: disallowed type or over the size ceiling."""


class AsyncReadable(Protocol):
    def read(self, size: int = -1) -> Awaitable[bytes]: ...


# ============================================================================
# UPLOAD GATEWAY
# ============================================================================

class UploadGateway:
    """
    Validates and stores uploaded media on local disk.

    Files are written under ``upload_dir`` with a generated name
    (``<ns timestamp>-<random>.<ext>``) and served back read-only at
    ``<url_prefix>/<name>``. The original filename is kept only as
    metadata.

    Usage:
        gateway = UploadGateway("uploads", "/uploads", max_bytes=50 * 1024 * 1024)
        stored = await gateway.save(upload_file, upload_file.filename, upload_file.content_type)
    """

    def __init__(self, upload_dir: str | os.PathLike, url_prefix: str = "/uploads", max_bytes: int = 50 * 1024 * 1024):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def validate(self, filename: str, mimetype: str) -> str:
        """
        Check the declared filename and MIME type against the allow-lists.

        Returns:
            The lower-cased extension, including the dot.

        Raises:
            UploadRejected: if either the extension or the MIME type is not allowed.
        """
        extension = Path(filename or "").suffix.lower()
        base_mimetype = (mimetype or "").split(";", 1)[0].strip().lower()

        if extension not in ALLOWED_EXTENSIONS or base_mimetype not in ALLOWED_MIME_TYPES:
            raise UploadRejected(f"Invalid file type: {filename!r} ({mimetype!r})")
        return extension

    def stored_name(self, extension: str) -> str:
        return f"{time.time_ns()}-{secrets.randbelow(10**9)}{extension}"

    async def save(self, stream: AsyncReadable, filename: str, mimetype: str) -> StoredFile:
        """
        Stream ``stream`` to disk and describe the stored file.

        Raises:
            UploadRejected: disallowed type, or more than ``max_bytes`` bytes.
            OSError: the file could not be written.
        """
        extension = self.validate(filename, mimetype)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        target, handle = self._create_unique(extension)
        size = 0
        try:
            with handle:
                while True:
                    chunk = await stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise UploadRejected(f"File exceeds {self.max_bytes} bytes")
                    handle.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise

        logger.info("✓ Stored upload %s as %s (%d bytes)", filename, target.name, size)
        return StoredFile(
            filename=target.name,
            originalname=filename,
            size=size,
            mimetype=mimetype,
            url=f"{self.url_prefix}/{target.name}",
        )

    def _create_unique(self, extension: str):
        # Exclusive create; a clash means a concurrent upload got the name first
        while True:
            target = self.upload_dir / self.stored_name(extension)
            try:
                return target, open(target, "xb")
            except FileExistsError:
                continue
