"""LocalBlobGateway tests -- content-addressed writes, fresh ids per upload"""

import hashlib

import pytest
from fieldops.core.exceptions import UploadError
from fieldops.core.models import UploadFile
from fieldops.core.store import LocalBlobGateway


def _file(name: str = "meter.jpg", content: bytes = b"\xff\xd8jpeg-bytes") -> UploadFile:
    return UploadFile(filename=name, mime_type="image/jpeg", content=content)


class TestLocalBlobGateway:
    async def test_upload_returns_refs_in_order(self, tmp_path):
        gateway = LocalBlobGateway(tmp_path / "blobs")
        files = [_file("a.jpg", b"aaa"), _file("b.jpg", b"bbb")]

        refs = await gateway.upload(files)

        assert [r.original_filename for r in refs] == ["a.jpg", "b.jpg"]
        assert refs[0].sha256 == hashlib.sha256(b"aaa").hexdigest()
        assert refs[1].size == 3
        assert await gateway.read(refs[0].sha256) == b"aaa"

    async def test_identical_content_stored_once_with_distinct_ids(self, tmp_path):
        gateway = LocalBlobGateway(tmp_path / "blobs")

        first = await gateway.upload([_file()])
        second = await gateway.upload([_file()])

        assert first[0].id != second[0].id
        assert first[0].sha256 == second[0].sha256
        stored = [p for p in (tmp_path / "blobs").rglob("*") if p.is_file()]
        assert len(stored) == 1

    async def test_read_missing_blob(self, tmp_path):
        gateway = LocalBlobGateway(tmp_path / "blobs")
        assert await gateway.read("0" * 64) is None

    async def test_write_failure_raises_upload_error(self, tmp_path):
        blocker = tmp_path / "blobs"
        blocker.write_text("not a directory")
        gateway = LocalBlobGateway(blocker)

        with pytest.raises(UploadError) as exc_info:
            await gateway.upload([_file()])
        assert exc_info.value.recoverable is True
        assert isinstance(exc_info.value.original_error, OSError)
