"""Access Broker - authorization gate and lifecycle orchestration for documents.

Every document operation goes through the broker. It decides, from an
explicit caller identity (or None for anonymous callers) and a document
reference, whether the operation is allowed, and it orders the calls to the
blob gateway and the metadata repository so that metadata and blobs stay
consistent:

- Uploads are two-phase. initiate_upload only issues a write handle;
  the descriptor is created by finalize_upload.
- Downloads issue the read handle first and count the download only once
  the handle exists. A download is "handle issued", not "bytes transferred".
- Deletes remove the blob first and the descriptor second, so metadata is
  never dropped for a blob that might still exist.

The broker holds no state between calls; one instance per request is fine.
"""

import logging
import secrets
from typing import Callable, List, Optional
from uuid import UUID

from ...observability import metrics
from .document_state import DocumentState, can_transition
from .errors import (
    DocumentAccessError,
    ForbiddenError,
    NotFoundError,
    StateConflictError,
    UnauthorizedError,
)
from .models import DocumentDescriptor, PendingUpload, ReadHandle, ShareState, Upload
from .ports import BlobGatewayPort, DocumentRepositoryPort
from .validation import (
    DEFAULT_CONTENT_TYPE,
    validate_metadata_update,
    validate_new_document,
    validate_upload_request,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 100 * 1024 * 1024


def generate_share_token() -> str:
    """Generate an unguessable URL-safe share token (192 bits of entropy)."""
    return secrets.token_urlsafe(24)


class AccessBroker:
    """Decision engine for document reads, writes, sharing and deletion.

    Example:
        broker = AccessBroker(
            repository=SqlDocumentRepository(db),
            gateway=S3BlobGateway.from_config(config),
            share_url_base="https://docs.example.com",
        )
        pending = await broker.initiate_upload("user-1", "notes.pdf")
        # client PUTs the file to pending.handle.url, then:
        document = broker.finalize_upload(
            "user-1", pending.storage_key, "Notes", None, "notes.pdf", 1024, "application/pdf"
        )
    """

    def __init__(
        self,
        repository: DocumentRepositoryPort,
        gateway: BlobGatewayPort,
        share_url_base: Optional[str] = None,
        max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
        token_factory: Callable[[], str] = generate_share_token,
    ):
        self.repository = repository
        self.gateway = gateway
        self.share_url_base = (share_url_base or "").rstrip("/")
        self.max_upload_size = max_upload_size
        self.token_factory = token_factory

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def initiate_upload(
        self,
        caller_id: Optional[str],
        file_name: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> PendingUpload:
        """Issue a write handle for a new upload. Writes no metadata.

        An upload that is never finalized leaves no descriptor, only
        (possibly) an orphaned blob under the owner's prefix.

        Raises:
            UnauthorizedError: No caller identity
            ValidationFailedError: Bad file name or content type
            GatewayUnavailableError: Handle could not be issued
        """
        owner_id = self._require_caller(caller_id, "initiate_upload")
        validate_upload_request(file_name, content_type)

        handle = await self.gateway.issue_write_handle(owner_id, file_name, content_type)
        metrics.upload_handles_issued_total.inc()

        logger.info(
            f"Upload handle issued: owner_id={owner_id}, content_type={content_type}",
            extra={"owner_id": owner_id, "operation": "initiate_upload"},
        )
        return PendingUpload(owner_id=owner_id, handle=handle)

    def finalize_upload(
        self,
        caller_id: Optional[str],
        storage_key: str,
        title: str,
        description: Optional[str],
        file_name: str,
        size_bytes: int,
        content_type: str,
    ) -> DocumentDescriptor:
        """Turn a pending upload into a PRIVATE descriptor owned by the caller.

        The blob is not checked for existence; a client that skips the PUT
        gets a descriptor whose first download fails at the store.

        Raises:
            UnauthorizedError: No caller identity
            ValidationFailedError: Bad payload or key outside the caller's namespace
            StateConflictError: The storage key was already finalized
        """
        owner_id = self._require_caller(caller_id, "finalize_upload")
        new_document = validate_new_document(
            owner_id=owner_id,
            owner_prefix=self.gateway.owner_prefix(owner_id),
            storage_key=storage_key,
            title=title,
            description=description,
            file_name=file_name,
            size_bytes=size_bytes,
            content_type=content_type,
            max_size=self.max_upload_size,
        )

        existing = self.repository.find_by_storage_key(new_document.storage_key)
        self._require_transition(existing, DocumentState.FINALIZED, "finalize_upload")

        document = self.repository.create(new_document)
        metrics.documents_finalized_total.inc()

        logger.info(
            f"Upload finalized: document_id={document.id}, owner_id={owner_id}, "
            f"size={document.size_bytes}",
            extra={"owner_id": owner_id, "document_id": str(document.id), "operation": "finalize_upload"},
        )
        return document

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_documents(self, caller_id: Optional[str]) -> List[DocumentDescriptor]:
        """Return the caller's own documents, newest first."""
        owner_id = self._require_caller(caller_id, "list_documents")
        return self.repository.find_by_owner(owner_id)

    def get_document(self, caller_id: Optional[str], document_id: UUID) -> DocumentDescriptor:
        """Return full metadata of a document. Owner only."""
        owner_id = self._require_caller(caller_id, "get_document")
        document = self._load(document_id, "get_document")
        self._require_owner(document, owner_id, "get_document")
        return document

    def get_shared_document(self, share_token: str) -> DocumentDescriptor:
        """Resolve a share token to its public document.

        Raises:
            NotFoundError: Unknown token, or the document is private
        """
        return self._resolve_share_token(share_token, "get_shared_document")

    async def request_download(self, caller_id: Optional[str], document_id: UUID) -> ReadHandle:
        """Issue a read handle for a document addressed by id.

        The owner always passes (no token involved); anyone else, including
        anonymous callers, passes only while the document is PUBLIC.

        Raises:
            NotFoundError: Unknown document id
            ForbiddenError: Caller is not the owner and the document is private
            GatewayUnavailableError: Read handle could not be issued
            StateConflictError: Document was deleted while the handle was issued
        """
        document = self._load(document_id, "request_download")

        if document.is_owned_by(caller_id):
            path = "owner"
        elif document.is_public:
            path = "public_id"
        else:
            raise self._denied(ForbiddenError(), "request_download", caller_id, document.id)

        return await self._issue_download(document, path)

    async def request_shared_download(self, share_token: str) -> ReadHandle:
        """Issue a read handle for a document addressed by its share token.

        A private document's dormant token answers exactly like an unknown
        token, so anonymous callers cannot probe for private documents.

        Raises:
            NotFoundError: Unknown token, or the document is private
            GatewayUnavailableError: Read handle could not be issued
            StateConflictError: Document was deleted while the handle was issued
        """
        document = self._resolve_share_token(share_token, "request_shared_download")
        return await self._issue_download(document, "share_token")

    # ------------------------------------------------------------------
    # Owner mutations
    # ------------------------------------------------------------------

    def toggle_visibility(
        self,
        caller_id: Optional[str],
        document_id: UUID,
        make_public: bool,
    ) -> ShareState:
        """Make a document public or private.

        The first switch to PUBLIC assigns a share token in the same
        statement as the flip. Later switches reuse it, and switching to
        PRIVATE leaves it dormant, so links handed out earlier start working
        again when the document is re-published. Toggling to the current
        state succeeds and changes nothing but updated_at.
        """
        owner_id = self._require_caller(caller_id, "toggle_visibility")
        document = self._load(document_id, "toggle_visibility")
        self._require_owner(document, owner_id, "toggle_visibility")

        updated = self.repository.set_visibility(document.id, make_public, self.token_factory)
        if updated is None:
            raise StateConflictError("Document was deleted")

        metrics.visibility_changes_total.labels(visibility=updated.visibility.value).inc()
        logger.info(
            f"Visibility set: document_id={updated.id}, visibility={updated.visibility.value}",
            extra={"owner_id": owner_id, "document_id": str(updated.id), "operation": "toggle_visibility"},
        )

        return ShareState(
            document_id=updated.id,
            visibility=updated.visibility,
            share_token=updated.share_token,
            share_url=self.share_url_for(updated.share_token) if updated.is_public else None,
        )

    def update_document(
        self,
        caller_id: Optional[str],
        document_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> DocumentDescriptor:
        """Edit title and/or description. Size and content type never change."""
        owner_id = self._require_caller(caller_id, "update_document")
        title, description = validate_metadata_update(title, description)
        document = self._load(document_id, "update_document")
        self._require_owner(document, owner_id, "update_document")

        updated = self.repository.update_metadata(document.id, title, description)
        if updated is None:
            raise StateConflictError("Document was deleted")
        return updated

    async def delete_document(self, caller_id: Optional[str], document_id: UUID) -> None:
        """Delete the blob, then the descriptor.

        If the blob cannot be deleted the descriptor is kept and the error
        propagates; the caller retries the whole delete (blob deletion is
        idempotent).

        Raises:
            NotFoundError / ForbiddenError: Authorization failures
            GatewayUnavailableError: Blob deletion failed, nothing changed
            StateConflictError: Descriptor disappeared during the delete
        """
        owner_id = self._require_caller(caller_id, "delete_document")
        document = self._load(document_id, "delete_document")
        self._require_owner(document, owner_id, "delete_document")
        self._require_transition(document, DocumentState.DELETED, "delete_document")

        await self.gateway.delete_object(document.storage_key)

        if not self.repository.delete(document.id):
            raise StateConflictError("Document was already deleted")

        metrics.documents_deleted_total.inc()
        logger.info(
            f"Document deleted: document_id={document.id}, owner_id={owner_id}",
            extra={"owner_id": owner_id, "document_id": str(document.id), "operation": "delete_document"},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def share_url_for(self, share_token: str) -> str:
        return f"{self.share_url_base}/shared/{share_token}"

    async def _issue_download(self, document: DocumentDescriptor, path: str) -> ReadHandle:
        # Handle first: a download that could not be issued is never counted
        handle = await self.gateway.issue_read_handle(document.storage_key)

        if not self.repository.increment_download_count(document.id):
            raise StateConflictError("Document was deleted")

        metrics.download_handles_issued_total.labels(path=path).inc()
        logger.info(
            f"Download handle issued: document_id={document.id}, path={path}",
            extra={"document_id": str(document.id), "operation": "download"},
        )
        return handle

    def _resolve_share_token(self, share_token: str, operation: str) -> DocumentDescriptor:
        document = self.repository.find_by_share_token(share_token) if share_token else None
        if document is None:
            raise self._denied(NotFoundError("Document not found or not public"), operation)
        return document

    def _load(self, document_id: UUID, operation: str) -> DocumentDescriptor:
        document = self.repository.get_by_id(document_id)
        if document is None:
            raise self._denied(NotFoundError(), operation, document_id=document_id)
        return document

    def _require_caller(self, caller_id: Optional[str], operation: str) -> str:
        if not caller_id:
            raise self._denied(UnauthorizedError(), operation)
        return caller_id

    def _require_owner(self, document: DocumentDescriptor, caller_id: str, operation: str) -> None:
        if not document.is_owned_by(caller_id):
            raise self._denied(ForbiddenError(), operation, caller_id, document.id)

    def _require_transition(self, current: Optional[Upload], target: DocumentState, operation: str) -> None:
        # A key with no descriptor yet is a pending upload
        from_state = current.state if current is not None else DocumentState.PENDING
        if not can_transition(from_state, target):
            raise StateConflictError(
                f"Cannot move document from {from_state.value} to {target.value} ({operation})"
            )

    def _denied(
        self,
        error: DocumentAccessError,
        operation: str,
        caller_id: Optional[str] = None,
        document_id: Optional[UUID] = None,
    ) -> DocumentAccessError:
        metrics.access_denied_total.labels(operation=operation, kind=error.kind.value).inc()
        logger.warning(
            f"Access denied: operation={operation}, kind={error.kind.value}, "
            f"caller_id={caller_id or 'anonymous'}, document_id={document_id}",
            extra={"operation": operation, "document_id": str(document_id) if document_id else None},
        )
        return error
