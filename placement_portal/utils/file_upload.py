"""
File Upload Utility - store uploaded PDFs on local disk.

Rules:
- Destination: settings.upload_dir (default <cwd>/public/temp), created on demand
- Stored name: <epoch-ms>-<random int>-<original name, whitespace runs -> "-">
- Only application/pdf is accepted
- Max file size: 1MB (settings.max_upload_size_bytes)

Use pdf_upload as a route dependency:
    @router.post("/resume")
    async def upload(stored: StoredFile = Depends(pdf_upload)):
        ...
"""

import logging
import os
import random
import re
import time
from typing import Optional

from fastapi import File, HTTPException, UploadFile
from pydantic import BaseModel

from placement_portal.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

CHUNK_SIZE = 64 * 1024
WHITESPACE_RUN = re.compile(r"\s+")


class StoredFile(BaseModel):
    original_name: str
    filename: str
    path: str
    content_type: str
    size: int


def ensure_upload_dir() -> str:
    """Create the upload directory if needed and return it."""
    os.makedirs(settings.upload_dir, exist_ok=True)
    return settings.upload_dir


def sanitize_filename(original_name: str) -> str:
    """Strip any directory part and replace whitespace runs with hyphens."""
    name = os.path.basename(original_name.replace("\\", "/"))
    return WHITESPACE_RUN.sub("-", name)


def build_stored_filename(original_name: str, now_ms: Optional[int] = None,
                          rand: Optional[int] = None) -> str:
    """<timestamp>-<random-int>-<sanitized-original-name>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if rand is None:
        rand = round(random.random() * 1e9)
    return f"{now_ms}-{rand}-{sanitize_filename(original_name)}"


def remove_stored_file(path: Optional[str]) -> bool:
    """Delete a stored upload if it is still on disk."""
    if not path or not os.path.isfile(path):
        return False
    os.remove(path)
    return True


def format_size(num_bytes: int) -> str:
    mb = num_bytes / (1024 * 1024)
    return f"{mb:g}MB" if mb >= 1 else f"{num_bytes // 1024}KB"


async def pdf_upload(file: UploadFile = File(..., description="PDF file (max 1MB)")) -> StoredFile:
    """
    Validate and store an uploaded PDF.

    Raises:
        HTTPException 400 - no filename / not a PDF
        HTTPException 413 - file larger than the configured limit
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    if file.content_type not in settings.allowed_upload_types:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed!")

    upload_dir = ensure_upload_dir()
    filename = build_stored_filename(file.filename)
    path = os.path.join(upload_dir, filename)
    limit = settings.max_upload_size_bytes

    size = 0
    too_large = False
    try:
        with open(path, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > limit:
                    too_large = True
                    break
                out.write(chunk)
    except Exception:
        logger.exception("Upload of %s failed, removing partial file", filename)
        remove_stored_file(path)
        raise

    if too_large:
        remove_stored_file(path)
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {format_size(limit)}"
        )

    logger.info("Stored upload %s (%d bytes)", filename, size)
    return StoredFile(
        original_name=file.filename,
        filename=filename,
        path=path,
        content_type=file.content_type,
        size=size
    )
