"""Document repository for database operations"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.documents.errors import RepositoryUnavailableError, StateConflictError
from ...domain.documents.models import DocumentDescriptor, NewDocument, Visibility
from ...domain.documents.ports import DocumentRepositoryPort
from ...models.document import StoredDocument
from ...observability import metrics

logger = logging.getLogger(__name__)

# A collision of 192-bit random tokens is not expected; this only bounds the loop
MAX_TOKEN_ATTEMPTS = 3


class SqlDocumentRepository(DocumentRepositoryPort):
    """Repository for stored_document database operations.

    Every mutating method runs in its own transaction and commits before
    returning. Visibility changes and download counting are single UPDATE
    statements so concurrent requests serialize in the database.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def create(self, document: NewDocument) -> DocumentDescriptor:
        """Persist a finalized document.

        Raises:
            StateConflictError: If the storage key is already registered
        """
        with self._guard("create"):
            row = StoredDocument(
                owner_id=document.owner_id,
                storage_key=document.storage_key,
                title=document.title,
                description=document.description,
                file_name=document.file_name,
                size_bytes=document.size_bytes,
                content_type=document.content_type,
                visibility=Visibility.PRIVATE,
                download_count=0,
            )
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise StateConflictError("This upload has already been finalized")

            self.db.refresh(row)
            return row.to_descriptor()

    def get_by_id(self, document_id: UUID) -> Optional[DocumentDescriptor]:
        with self._guard("get_by_id"):
            row = self.db.get(StoredDocument, document_id, populate_existing=True)
            return row.to_descriptor() if row else None

    def find_by_owner(self, owner_id: str) -> List[DocumentDescriptor]:
        """Get all documents of one owner, newest first.

        Args:
            owner_id: Owner identity (the only rows ever returned)

        Returns:
            List of DocumentDescriptor objects
        """
        query = (
            select(StoredDocument)
            .where(StoredDocument.owner_id == owner_id)
            .order_by(StoredDocument.created_at.desc(), StoredDocument.id.desc())
        )
        with self._guard("find_by_owner"):
            rows = self.db.execute(query).scalars().all()
            return [row.to_descriptor() for row in rows]

    def find_by_share_token(self, share_token: str) -> Optional[DocumentDescriptor]:
        """Resolve a share token to a PUBLIC document.

        Private documents are filtered out in the query itself, so a dormant
        token resolves exactly like an unknown one.
        """
        query = select(StoredDocument).where(
            StoredDocument.share_token == share_token,
            StoredDocument.visibility == Visibility.PUBLIC,
        )
        with self._guard("find_by_share_token"):
            row = self.db.execute(query).scalars().first()
            return row.to_descriptor() if row else None

    def find_by_storage_key(self, storage_key: str) -> Optional[DocumentDescriptor]:
        query = select(StoredDocument).where(StoredDocument.storage_key == storage_key)
        with self._guard("find_by_storage_key"):
            row = self.db.execute(query).scalars().first()
            return row.to_descriptor() if row else None

    def set_visibility(
        self,
        document_id: UUID,
        make_public: bool,
        token_factory: Callable[[], str],
    ) -> Optional[DocumentDescriptor]:
        """Flip visibility, assigning a share token in the same statement.

        UPDATE stored_document
           SET visibility = 'PUBLIC',
               share_token = COALESCE(share_token, :new_token), ...
         WHERE id = :id

        An existing token always wins over the new one, so a token is never
        rotated. A fresh token is only drawn while the stored one is still
        null; COALESCE keeps a concurrent assignment from being overwritten.
        Making a document private leaves share_token untouched.

        Returns:
            Updated descriptor, or None if the document no longer exists
        """
        values = {
            "visibility": Visibility.PUBLIC if make_public else Visibility.PRIVATE,
            "updated_at": datetime.now(timezone.utc),
        }

        with self._guard("set_visibility"):
            for attempt in range(1, MAX_TOKEN_ATTEMPTS + 1):
                if make_public:
                    current = self.db.execute(
                        select(StoredDocument.share_token).where(StoredDocument.id == document_id)
                    ).scalar_one_or_none()
                    if current is None:
                        values["share_token"] = func.coalesce(StoredDocument.share_token, token_factory())

                stmt = (
                    update(StoredDocument)
                    .where(StoredDocument.id == document_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                try:
                    result = self.db.execute(stmt)
                    self.db.commit()
                    break
                except IntegrityError:
                    self.db.rollback()
                    logger.warning(
                        f"Share token collision, retrying: document_id={document_id}, attempt={attempt}"
                    )
            else:
                raise StateConflictError("Could not assign a unique share token")

            if result.rowcount == 0:
                return None

        return self.get_by_id(document_id)

    def update_metadata(
        self,
        document_id: UUID,
        title: Optional[str],
        description: Optional[str],
    ) -> Optional[DocumentDescriptor]:
        values = {"updated_at": datetime.now(timezone.utc)}
        if title is not None:
            values["title"] = title
        if description is not None:
            values["description"] = description or None

        stmt = (
            update(StoredDocument)
            .where(StoredDocument.id == document_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with self._guard("update_metadata"):
            result = self.db.execute(stmt)
            self.db.commit()
            if result.rowcount == 0:
                return None

        return self.get_by_id(document_id)

    def increment_download_count(self, document_id: UUID) -> bool:
        """Atomically increment download_count in the database.

        UPDATE stored_document SET download_count = download_count + 1 WHERE id = :id
        """
        stmt = (
            update(StoredDocument)
            .where(StoredDocument.id == document_id)
            .values(
                download_count=StoredDocument.download_count + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        with self._guard("increment_download_count"):
            result = self.db.execute(stmt)
            self.db.commit()
            return result.rowcount > 0

    def delete(self, document_id: UUID) -> bool:
        stmt = (
            delete(StoredDocument)
            .where(StoredDocument.id == document_id)
            .execution_options(synchronize_session=False)
        )
        with self._guard("delete"):
            result = self.db.execute(stmt)
            self.db.commit()
            return result.rowcount > 0

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate driver/connection failures into RepositoryUnavailableError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            metrics.repository_errors_total.labels(operation=operation).inc()
            logger.error(f"Repository operation failed: operation={operation}, error={type(e).__name__}", exc_info=True)
            raise RepositoryUnavailableError()
