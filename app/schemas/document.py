"""Request and response models for document endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UploadTargetResponse(BaseModel):
    """Signed, single-use upload destination."""

    upload_url: str = Field(..., description="Signed URL accepting one PUT of the file bytes")
    storage_ref: str = Field(..., description="Reference to pass to create_document afterwards")
    token: Optional[str] = Field(None, description="Upload token embedded in the URL")
    expires_in: int = Field(..., description="Seconds until the URL expires")


class CreateDocumentRequest(BaseModel):
    """Metadata registered after the bytes were uploaded."""

    storage_ref: str = Field(..., min_length=1, description="Storage reference from the upload target")
    filename: str = Field(..., min_length=1, description="Original file name")
    content_type: str = Field(..., min_length=1, description="MIME type of the file")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")


class DocumentResponse(BaseModel):
    """Document metadata, optionally with a short-lived download URL."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    practice_id: UUID
    storage_ref: str
    filename: str
    content_type: str
    size_bytes: int
    status: str = Field(..., description="uploaded | queued | processing | complete | error")
    uploaded_by: str
    created_at: datetime
    updated_at: datetime
    url: Optional[str] = Field(None, description="Expiring download URL, null if unresolvable")
