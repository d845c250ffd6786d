"""Document API endpoints.

Thin HTTP layer over the access broker. Every route resolves the caller id
from the bearer token (required or optional), hands it to the broker, and
turns the result into a response schema. Broker errors are rendered by the
DocumentAccessError handler registered in main.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ....auth.dependencies import CurrentUserId, OptionalUserId
from ....dependencies import get_access_broker
from ....domain.documents import AccessBroker
from .schemas import (
    CreateDocumentRequest,
    DocumentListResponse,
    DocumentResponse,
    DownloadResponse,
    PresignUploadRequest,
    PresignUploadResponse,
    ShareRequest,
    ShareResponse,
    SharedDocumentResponse,
    UpdateDocumentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

shared_router = APIRouter(prefix="/shared", tags=["shared"])


@router.get("", response_model=DocumentListResponse)
def list_documents(
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """List the caller's documents, newest first."""
    documents = broker.list_documents(user_id)
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.post("/presign-upload", response_model=PresignUploadResponse)
async def presign_upload(
    body: PresignUploadRequest,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Issue a presigned upload URL.

    Nothing is recorded yet; the client PUTs the file and then calls
    POST /documents with the returned storage_key.
    """
    pending = await broker.initiate_upload(user_id, body.file_name, body.content_type)
    handle = pending.handle
    return PresignUploadResponse(
        upload_url=handle.url,
        storage_key=handle.storage_key,
        method=handle.method,
        content_type=handle.content_type,
        expires_at=handle.expires_at,
    )


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_document(
    body: CreateDocumentRequest,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Finalize an upload. The new document is private."""
    document = broker.finalize_upload(
        user_id,
        storage_key=body.storage_key,
        title=body.title,
        description=body.description,
        file_name=body.file_name,
        size_bytes=body.size_bytes,
        content_type=body.content_type,
    )
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    return DocumentResponse.model_validate(broker.get_document(user_id, document_id))


@router.patch("/{document_id}", response_model=DocumentResponse)
def update_document(
    document_id: UUID,
    body: UpdateDocumentRequest,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Edit title and/or description."""
    document = broker.update_document(
        user_id, document_id, title=body.title, description=body.description
    )
    return DocumentResponse.model_validate(document)


@router.post("/{document_id}/share", response_model=ShareResponse)
def share_document(
    document_id: UUID,
    body: ShareRequest,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Publish or unpublish a document.

    The share token is created on first publish and reused afterwards.
    """
    share_state = broker.toggle_visibility(user_id, document_id, body.is_public)
    return ShareResponse.model_validate(share_state)


@router.get("/{document_id}/download", response_model=DownloadResponse)
async def download_document(
    document_id: UUID,
    user_id: OptionalUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Issue a presigned download URL.

    Owners always pass; anyone else only while the document is public.
    """
    handle = await broker.request_download(user_id, document_id)
    return DownloadResponse(download_url=handle.url, expires_at=handle.expires_at)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    user_id: CurrentUserId,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Delete the stored file and then its metadata."""
    await broker.delete_document(user_id, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@shared_router.get("/{share_token}", response_model=SharedDocumentResponse)
def get_shared_document(
    share_token: str,
    broker: AccessBroker = Depends(get_access_broker),
):
    """Public metadata behind a share link."""
    return SharedDocumentResponse.model_validate(broker.get_shared_document(share_token))


@shared_router.get("/{share_token}/download", response_model=DownloadResponse)
async def download_shared_document(
    share_token: str,
    broker: AccessBroker = Depends(get_access_broker),
):
    handle = await broker.request_shared_download(share_token)
    return DownloadResponse(download_url=handle.url, expires_at=handle.expires_at)
