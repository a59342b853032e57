"""Collaborator Protocol interfaces

Structural typing: LocalBlobGateway satisfies AttachmentGateway without
inheriting from it; tests substitute fakes the same way.
"""

from typing import Protocol

from ..models.attachment import AttachmentRef, UploadFile


class AttachmentGateway(Protocol):
    """External file storage collaborator

    upload must finish (or fail with UploadError) before any transactional
    write that references its results.
    """

    async def upload(self, files: list[UploadFile]) -> list[AttachmentRef]: ...
