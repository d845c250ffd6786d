from .document_repository import SqlDocumentRepository

__all__ = ["SqlDocumentRepository"]
