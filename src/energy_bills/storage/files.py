"""Local disk storage for uploaded bill PDFs."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalFileStorage:
    """Stores uploads under ``base_dir`` as ``<uuid>_<sanitised name>``."""

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)

    async def save(self, content: bytes, filename: str | None) -> str:
        """Write ``content`` and return the stored path."""
        safe_name = _UNSAFE_CHARS.sub("_", Path(filename or "upload.pdf").name).strip("._") or "upload.pdf"
        path = self._base_dir / f"{uuid4().hex}_{safe_name}"
        await asyncio.to_thread(self._write, path, content)
        logger.info("upload_saved", path=str(path), size_bytes=len(content))
        return str(path)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def remove(self, path: str) -> None:
        """Delete a stored file; a file that is already gone is not an error."""
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
