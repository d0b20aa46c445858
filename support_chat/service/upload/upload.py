import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

import support_chat.config.config as configs

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
CHAT_SUBDIR = "chat"


class UploadRejected(Exception):
    """The file is missing, empty, too large or of a disallowed type."""


def _is_allowed(content_type: Optional[str]) -> bool:
    return bool(content_type) and content_type.startswith(configs.UPLOAD_MIME_PREFIXES)


async def save_chat_upload(
    file: Optional[UploadFile],
    upload_dir: Optional[Path] = None,
    max_bytes: Optional[int] = None,
) -> str:
    """Store one chat image/video and return its public URL."""
    if file is None or not file.filename:
        raise UploadRejected("No file uploaded")
    if not _is_allowed(file.content_type):
        raise UploadRejected("Only image and video files are allowed")

    upload_dir = Path(upload_dir or configs.UPLOAD_DIR) / CHAT_SUBDIR
    max_bytes = max_bytes or configs.UPLOAD_MAX_BYTES
    await asyncio.to_thread(upload_dir.mkdir, parents=True, exist_ok=True)

    name = f"{uuid.uuid4()}{Path(file.filename).suffix.lower()}"
    target = upload_dir / name
    written = 0
    try:
        with target.open("wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadRejected(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")
                await asyncio.to_thread(out.write, chunk)
        if written == 0:
            raise UploadRejected("Empty file detected")
    except UploadRejected:
        await asyncio.to_thread(target.unlink, missing_ok=True)
        raise

    logger.info("stored chat upload name=%s bytes=%s", name, written)
    return f"{configs.UPLOAD_URL_PREFIX}/{CHAT_SUBDIR}/{name}"
