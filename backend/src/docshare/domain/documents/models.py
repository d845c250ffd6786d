"""Domain models for stored documents and the handles that reach them.

These are plain immutable values passed between the access broker, the
metadata repository and the blob gateway. None of them is tied to
SQLAlchemy or boto3.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from .document_state import DocumentState


class Visibility(str, Enum):
    """Who may read a finalized document"""
    PRIVATE = "PRIVATE"  # Owner only
    PUBLIC = "PUBLIC"    # Anyone holding the share token


@dataclass(frozen=True)
class WriteHandle:
    """Presigned capability allowing one PUT of one object.

    Attributes:
        url: Presigned URL the client uploads to
        storage_key: Key the object will be stored under
        content_type: Content-Type the client must send with the PUT
        expires_at: Moment after which the URL is rejected by the store
    """
    url: str
    storage_key: str
    content_type: str
    expires_at: datetime
    method: str = "PUT"


@dataclass(frozen=True)
class ReadHandle:
    """Presigned capability allowing one GET of one object"""
    url: str
    expires_at: datetime


@dataclass(frozen=True)
class DocumentDescriptor:
    """Durable metadata record for one stored document"""
    id: UUID
    owner_id: str
    storage_key: str
    title: str
    description: Optional[str]
    file_name: str
    size_bytes: int
    content_type: str
    visibility: Visibility
    share_token: Optional[str]
    download_count: int
    created_at: datetime
    updated_at: datetime

    @property
    def state(self) -> DocumentState:
        return DocumentState.FINALIZED

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    def is_owned_by(self, caller_id: Optional[str]) -> bool:
        return caller_id is not None and caller_id == self.owner_id


@dataclass(frozen=True)
class PendingUpload:
    """An upload whose handle was issued but whose metadata was not finalized.

    Never persisted: if the client abandons the upload, nothing but the
    (possibly written) blob remains.
    """
    owner_id: str
    handle: WriteHandle

    @property
    def state(self) -> DocumentState:
        return DocumentState.PENDING

    @property
    def storage_key(self) -> str:
        return self.handle.storage_key


# Tagged variant of an upload as seen by the broker
Upload = Union[PendingUpload, DocumentDescriptor]


@dataclass(frozen=True)
class NewDocument:
    """Validated finalize payload, ready to be persisted"""
    owner_id: str
    storage_key: str
    title: str
    description: Optional[str]
    file_name: str
    size_bytes: int
    content_type: str


@dataclass(frozen=True)
class ShareState:
    """Result of a visibility change.

    share_url is only set while the document is public; share_token stays
    populated while dormant so the owner can see which link will come back.
    """
    document_id: UUID
    visibility: Visibility
    share_token: Optional[str]
    share_url: Optional[str]
