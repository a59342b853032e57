"""HTTP request bodies shared by the routes

Attachments travel as base64 in JSON bodies and are decoded into UploadFile
before they reach the services.
"""

import base64
import binascii

from fieldops.core.exceptions import ValidationError
from fieldops.core.models import GeoLocation, UploadFile
from pydantic import BaseModel, Field


class AttachmentIn(BaseModel):
    """A file in a request body"""

    filename: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    content_base64: str

    def to_upload_file(self) -> UploadFile:
        try:
            content = base64.b64decode(self.content_base64, validate=True)
        except binascii.Error:
            raise ValidationError(
                f"Attachment {self.filename} is not valid base64", field="attachments"
            ) from None
        return UploadFile(filename=self.filename, mime_type=self.mime_type, content=content)


def decode_attachments(attachments: list[AttachmentIn]) -> list[UploadFile]:
    return [a.to_upload_file() for a in attachments]


class VisitBody(BaseModel):
    """Check-in / check-out body"""

    worker_id: str = Field(min_length=1)
    location: GeoLocation
    attachments: list[AttachmentIn] = Field(default_factory=list)
    note: str | None = None


class PaymentBody(BaseModel):
    amount: str | int = Field(description="Decimal string; JSON floats are rejected")
    currency: str | None = None
    notes: str | None = None
    invoice: AttachmentIn | None = None


class CheckoutBody(VisitBody):
    payment: PaymentBody | None = None


class CommentBody(BaseModel):
    actor_id: str = Field(min_length=1)
    body: str
    attachments: list[AttachmentIn] = Field(default_factory=list)
