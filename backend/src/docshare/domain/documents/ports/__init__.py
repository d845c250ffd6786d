from .blob_gateway_port import BlobGatewayPort
from .document_repository_port import DocumentRepositoryPort

__all__ = ["BlobGatewayPort", "DocumentRepositoryPort"]
