"""StoredDocument SQLAlchemy model

StoredDocument is the durable descriptor of one uploaded file: who owns it,
where its blob lives, who may read it, and how often it was downloaded.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Enum as SQLEnum, Index, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from .base import Base
from ..domain.documents.models import DocumentDescriptor, Visibility


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(Base):
    """Descriptor row for one finalized upload.

    Rows exist only for finalized uploads; a pending upload never writes
    here. storage_key and share_token are unique where present.
    """
    __tablename__ = "stored_document"
    __table_args__ = (
        Index("ix_stored_document_owner_id", "owner_id"),
        Index("ix_stored_document_share_token", "share_token", unique=True),
        Index("ix_stored_document_storage_key", "storage_key", unique=True),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(255), nullable=False)
    storage_key = Column(String(1000), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    file_name = Column(String(500), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    content_type = Column(String(100), nullable=False, server_default="application/pdf")
    visibility = Column(
        SQLEnum(Visibility, name="documentvisibility", native_enum=False, length=16),
        nullable=False,
        default=Visibility.PRIVATE,
        server_default=Visibility.PRIVATE.value,
    )
    share_token = Column(String(64), nullable=True)
    download_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    def to_descriptor(self) -> DocumentDescriptor:
        """Convert the row to its immutable domain representation"""
        return DocumentDescriptor(
            id=self.id,
            owner_id=self.owner_id,
            storage_key=self.storage_key,
            title=self.title,
            description=self.description,
            file_name=self.file_name,
            size_bytes=self.size_bytes,
            content_type=self.content_type,
            visibility=Visibility(self.visibility),
            share_token=self.share_token,
            download_count=self.download_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
