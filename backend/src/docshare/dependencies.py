"""Global FastAPI dependencies wiring the access broker to its adapters.

This module provides:
- get_blob_gateway: Blob gateway resolved on first use by an operation
- get_document_repository: SQL repository bound to the request's session
- get_access_broker: Stateless broker built per request

Routes never talk to the gateway or the repository directly; every document
operation goes through the broker returned by get_access_broker.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .domain.documents import AccessBroker
from .domain.documents.errors import GatewayUnavailableError
from .domain.documents.models import ReadHandle, WriteHandle
from .domain.documents.ports import BlobGatewayPort, DocumentRepositoryPort
from .infrastructure.repositories import SqlDocumentRepository
from .infrastructure.storage import S3BlobGateway, load_storage_config

logger = logging.getLogger(__name__)

# Gateway singleton (initialized on first use)
_blob_gateway: Optional[S3BlobGateway] = None


def resolve_blob_gateway() -> BlobGatewayPort:
    """Get or create the S3 blob gateway singleton.

    Raises:
        GatewayUnavailableError: If storage configuration is invalid or the
            client cannot be created
    """
    global _blob_gateway

    if _blob_gateway is None:
        try:
            config = load_storage_config()
        except ValueError as e:
            logger.error(f"Invalid storage configuration: {e}")
            raise GatewayUnavailableError("Object storage is not configured") from e

        _blob_gateway = S3BlobGateway.from_config(config)
        logger.info("Initialized blob gateway")

    return _blob_gateway


class LazyBlobGateway(BlobGatewayPort):
    """Blob gateway that builds the real one only when an operation runs.

    Listing, metadata reads and visibility changes never touch object
    storage, so a broken storage configuration must not fail them. The
    resolver's GatewayUnavailableError surfaces from the first call that
    actually needs the store.
    """

    def __init__(self, resolve: Callable[[], BlobGatewayPort] = resolve_blob_gateway):
        self._resolve = resolve

    def owner_prefix(self, owner_id: str) -> str:
        return self._resolve().owner_prefix(owner_id)

    async def issue_write_handle(self, owner_id: str, file_name: str, content_type: str) -> WriteHandle:
        return await self._resolve().issue_write_handle(owner_id, file_name, content_type)

    async def issue_read_handle(self, storage_key: str) -> ReadHandle:
        return await self._resolve().issue_read_handle(storage_key)

    async def delete_object(self, storage_key: str) -> None:
        await self._resolve().delete_object(storage_key)

    async def check_health(self) -> bool:
        return await self._resolve().check_health()


def get_blob_gateway() -> BlobGatewayPort:
    return LazyBlobGateway()


def get_document_repository(db: Session = Depends(get_db)) -> DocumentRepositoryPort:
    return SqlDocumentRepository(db)


def get_access_broker(
    request: Request,
    repository: DocumentRepositoryPort = Depends(get_document_repository),
    gateway: BlobGatewayPort = Depends(get_blob_gateway),
) -> AccessBroker:
    """Build an access broker for the current request.

    Share links are built from PUBLIC_BASE_URL when set, otherwise from the
    origin the request came in on.
    """
    settings = get_settings()
    share_url_base = settings.PUBLIC_BASE_URL or str(request.base_url)

    return AccessBroker(
        repository=repository,
        gateway=gateway,
        share_url_base=share_url_base,
        max_upload_size=settings.MAX_UPLOAD_SIZE_BYTES,
    )
