import logging
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from fitmate.core.config import settings
from fitmate.core.errors import BadRequestError

logger = logging.getLogger(__name__)

# Constants
CHUNK_SIZE = 1024 * 1024  # 1MB chunks
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def validate_image(file: UploadFile, field: str = "paymentImage") -> str:
    """Check the upload is an allowed image and return its content type."""
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise BadRequestError(
            f"{field} must be an image ({', '.join(sorted(ALLOWED_IMAGE_TYPES))})"
        )
    return content_type


async def read_upload(file: UploadFile, max_bytes: int, field: str = "paymentImage") -> bytes:
    """Read an upload in chunks, refusing it once it grows past ``max_bytes``."""
    chunks = []
    size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise BadRequestError(f"{field} exceeds the {max_bytes // (1024 * 1024)}MB limit")
        chunks.append(chunk)
    if size == 0:
        raise BadRequestError(f"{field} file is empty")
    return b"".join(chunks)


class ProofStore:
    """Where payment proof images are kept, addressed by storage key."""

    async def save(self, key: str, content: bytes) -> None:
        raise NotImplementedError

    async def load(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if nothing is stored under the key."""
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class LocalProofStore(ProofStore):
    """Keeps images as files under one directory on local disk."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        # Keys are generated server side, but never let one escape the root
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the store: {key}")
        return path

    def _write(self, key: str, content: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def save(self, key: str, content: bytes) -> None:
        await run_in_threadpool(self._write, key, content)
        logger.info(f"Stored {len(content)} bytes under {key}")

    async def load(self, key: str) -> Optional[bytes]:
        return await run_in_threadpool(self._read, key)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._remove, key)


def get_proof_store() -> ProofStore:
    """Dependency returning the configured proof store."""
    return LocalProofStore(settings.PAYMENT_PROOF_DIR)
