import logging
from dataclasses import dataclass
from pathlib import Path
from secrets import token_urlsafe
from typing import Iterable

from idealcar.exceptions import UploadRejected

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass
class PendingFile:
    content_type: str
    data: bytes


class UploadHandler:
    """Validates image uploads and writes them under ``upload_dir``.

    A request's files are all checked before the first one is written,
    so a single bad file leaves nothing behind on disk.
    """

    def __init__(self, upload_dir: str | Path, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    async def prepare(self, files: Iterable, max_count: int, field: str = "images") -> list[PendingFile]:
        """Read and validate without touching the disk."""
        files = [f for f in files if f is not None and getattr(f, "filename", "")]
        if len(files) > max_count:
            raise UploadRejected(f"Too many files for '{field}' (maximum {max_count})")
        pending: list[PendingFile] = []
        for f in files:
            content_type = (f.content_type or "").split(";")[0].strip().lower()
            if content_type not in ALLOWED_TYPES:
                raise UploadRejected("Only image files are allowed")
            data = await f.read()
            if len(data) > self.max_bytes:
                limit_mb = self.max_bytes / (1024 * 1024)
                raise UploadRejected(f"File {f.filename} exceeds the {limit_mb:g}MB limit")
            pending.append(PendingFile(content_type, data))
        return pending

    def store(self, pending: list[PendingFile], field: str = "images") -> list[str]:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        urls = []
        for p in pending:
            fname = f"{token_urlsafe(16)}{ALLOWED_TYPES[p.content_type]}"
            (self.upload_dir / fname).write_bytes(p.data)
            urls.append(f"{URL_PREFIX}/{fname}")
        if urls:
            logger.info("Stored %d upload(s) for %s", len(urls), field)
        return urls

    async def save_images(self, files: Iterable, max_count: int, field: str = "images") -> list[str]:
        return self.store(await self.prepare(files, max_count, field), field)

    def discard(self, urls: Iterable[str | None]) -> None:
        """Delete files we stored earlier; remote URLs are left alone."""
        for url in urls:
            if not url or not url.startswith(URL_PREFIX + "/"):
                continue
            try:
                (self.upload_dir / Path(url).name).unlink()
            except FileNotFoundError:
                pass
