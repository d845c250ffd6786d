"""Document API request/response schemas

Storage keys only ever appear in the presign response and the finalize
request; no other response carries one.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ....domain.documents.models import Visibility
from ....domain.documents.validation import DEFAULT_CONTENT_TYPE


class PresignUploadRequest(BaseModel):
    """Request for a presigned upload URL"""
    file_name: str = Field(..., description="Original file name, used in the storage key")
    content_type: str = Field(DEFAULT_CONTENT_TYPE, description="Content-Type the client will upload with")


class PresignUploadResponse(BaseModel):
    """Presigned upload handle"""
    upload_url: str = Field(..., description="URL to PUT the file to")
    storage_key: str = Field(..., description="Key to send back when finalizing the upload")
    method: str = Field("PUT", description="HTTP method for the upload")
    content_type: str = Field(..., description="Content-Type header the PUT must carry")
    expires_at: datetime = Field(..., description="When the upload URL stops working")


class CreateDocumentRequest(BaseModel):
    """Finalize an upload into a document"""
    storage_key: str = Field(..., description="Key returned by presign-upload")
    title: str = Field(..., description="Document title")
    description: Optional[str] = Field(None, description="Free-text description")
    file_name: str = Field(..., description="Original file name")
    size_bytes: int = Field(..., description="File size in bytes")
    content_type: str = Field(DEFAULT_CONTENT_TYPE, description="MIME type of the uploaded file")


class UpdateDocumentRequest(BaseModel):
    """Edit descriptive metadata; omitted fields stay unchanged"""
    title: Optional[str] = None
    description: Optional[str] = None


class ShareRequest(BaseModel):
    """Make a document public or private"""
    is_public: bool = Field(..., description="True to publish, False to make private")


class DocumentResponse(BaseModel):
    """Document metadata as seen by its owner"""
    id: UUID
    title: str
    description: Optional[str] = None
    file_name: str
    size_bytes: int
    content_type: str
    visibility: Visibility
    share_token: Optional[str] = Field(None, description="Share token, also kept while private")
    download_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int


class SharedDocumentResponse(BaseModel):
    """Public view of a shared document"""
    title: str
    description: Optional[str] = None
    file_name: str
    size_bytes: int
    content_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class ShareResponse(BaseModel):
    """Visibility after a share toggle"""
    document_id: UUID
    visibility: Visibility
    share_token: Optional[str] = None
    share_url: Optional[str] = Field(None, description="Public link, only set while public")

    class Config:
        from_attributes = True


class DownloadResponse(BaseModel):
    """Presigned download handle"""
    download_url: str = Field(..., description="URL to GET the file from")
    expires_at: datetime
