"""Attachment Domain Model

Blobs live in the attachment gateway. The core only stores metadata rows and
AttachmentRef summaries inside event payloads.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import AttachmentCategory


class UploadFile(BaseModel):
    """A file handed to the gateway"""

    filename: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class AttachmentRef(BaseModel):
    """Gateway result and event payload entry: {id, mimeType, originalFilename}"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    mime_type: str
    original_filename: str
    size: int = 0
    sha256: str = ""


class Attachment(BaseModel):
    """Attachment metadata row owned by a task"""

    attachment_id: str
    task_id: str
    category: AttachmentCategory
    mime_type: str
    original_filename: str
    size: int = 0
    sha256: str = ""
    created_at: datetime
