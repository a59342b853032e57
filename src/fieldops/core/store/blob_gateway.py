"""LocalBlobGateway -- content-addressed attachment gateway on the local filesystem

Blobs are written once under <root>/<sha[:2]>/<sha>; identical content is
stored once. Every upload still gets a fresh attachment id, so re-uploading
after a failed checkout never collides with an orphaned earlier upload.
"""

import asyncio
import hashlib
from pathlib import Path

import structlog
from ulid import ULID

from ..exceptions import UploadError
from ..models.attachment import AttachmentRef, UploadFile

log = structlog.get_logger()


def compute_hash_and_size(content: bytes) -> tuple[str, int]:
    """SHA-256 hex digest and byte size"""
    return hashlib.sha256(content).hexdigest(), len(content)


class LocalBlobGateway:
    """AttachmentGateway writing blobs to a directory"""

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    async def upload(self, files: list[UploadFile]) -> list[AttachmentRef]:
        """Store files and return their refs, in input order

        Raises:
            UploadError: the filesystem write failed
        """
        refs: list[AttachmentRef] = []
        for file in files:
            sha256, size = compute_hash_and_size(file.content)
            path = self.blob_path(sha256)
            try:
                await asyncio.to_thread(self._write_once, path, file.content)
            except OSError as e:
                log.error(
                    "blob_write_failed",
                    filename=file.filename,
                    sha256=sha256,
                    error_type=type(e).__name__,
                )
                raise UploadError(f"Failed to store {file.filename}", original_error=e) from e
            refs.append(
                AttachmentRef(
                    id=str(ULID()),
                    mime_type=file.mime_type,
                    original_filename=file.filename,
                    size=size,
                    sha256=sha256,
                )
            )
        return refs

    async def read(self, sha256: str) -> bytes | None:
        path = self.blob_path(sha256)
        if not path.exists():
            return None
        return await asyncio.to_thread(path.read_bytes)

    def blob_path(self, sha256: str) -> Path:
        return self._root_dir / sha256[:2] / sha256

    @staticmethod
    def _write_once(path: Path, content: bytes) -> None:
        if path.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(content)
        tmp_path.replace(path)
