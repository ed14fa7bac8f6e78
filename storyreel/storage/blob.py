"""
Blob store interface and a filesystem implementation.

Assets are written once per key. A put under an existing key with
identical bytes leaves the stored file untouched, so retried uploads are
idempotent in effect.
"""

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from storyreel.errors import InvalidInput, NotFound, PersistenceError
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)


def image_key(image_id: str, extension: str) -> str:
    return f"story-images/{image_id}.{extension}"


def video_key(video_id: str) -> str:
    return f"story-videos/{video_id}.mp4"


class BlobStore(ABC):
    """Abstract durable blob store"""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store ``data`` under ``key``.

        Returns:
            Public URL of the stored asset

        Raises:
            PersistenceError: The write failed
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Read back a stored asset"""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass


class LocalBlobStore(BlobStore):
    """
    Blob store rooted at a local directory.

    Attributes:
        root: Directory holding the assets
        public_base_url: URL prefix the assets are served under
    """

    def __init__(self, root: str, public_base_url: str = "/blobs"):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or ".." in Path(key).parts:
            raise InvalidInput(f"Invalid blob key: {key!r}")
        return self.root / key

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def _write(self, path: Path, data: bytes) -> bool:
        """Atomically write ``data`` to ``path``; returns False when unchanged."""
        if path.exists() and path.read_bytes() == data:
            return False

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".blob-", dir=str(path.parent))
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
        return True

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)
        try:
            written = await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(
                f"[Blob] Failed to store {key}: {e}",
                extra={"component": "Blob", "key": key, "content_type": content_type},
            )
            raise PersistenceError(f"Failed to store blob {key}") from e

        logger.info(
            f"[Blob] {'Stored' if written else 'Unchanged'} {key} ({len(data)} bytes)",
            extra={
                "component": "Blob",
                "key": key,
                "content_type": content_type,
                "size_bytes": len(data),
            },
        )
        return self.url_for(key)

    async def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.exists():
            raise NotFound(f"Blob not found: {key}")
        return await asyncio.to_thread(path.read_bytes)

    async def exists(self, key: str) -> bool:
        return self._path_for(key).exists()
