"""Document Repository Port - Domain interface for descriptor persistence.

The repository is the single source of truth for document metadata and the
sole arbiter of concurrent mutation. Anything that must be atomic (visibility
flip with token assignment, download counting) is done in one storage-level
statement, never as read-then-write in application code.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
from uuid import UUID

from ..models import DocumentDescriptor, NewDocument


class DocumentRepositoryPort(ABC):
    """Port interface for document descriptor storage.

    All methods raise RepositoryUnavailableError on connectivity or timeout
    failures of the underlying store.
    """

    @abstractmethod
    def create(self, document: NewDocument) -> DocumentDescriptor:
        """Persist a finalized document as PRIVATE with download_count 0.

        Raises:
            StateConflictError: If the storage key is already registered
        """
        pass

    @abstractmethod
    def get_by_id(self, document_id: UUID) -> Optional[DocumentDescriptor]:
        pass

    @abstractmethod
    def find_by_owner(self, owner_id: str) -> List[DocumentDescriptor]:
        """Return the owner's documents, newest first. Never other owners' rows."""
        pass

    @abstractmethod
    def find_by_share_token(self, share_token: str) -> Optional[DocumentDescriptor]:
        """Resolve a public share token.

        Returns None for unknown tokens AND for tokens whose document is
        currently PRIVATE. The visibility filter is applied here so no caller
        can leak a private document through a dormant token.
        """
        pass

    @abstractmethod
    def find_by_storage_key(self, storage_key: str) -> Optional[DocumentDescriptor]:
        pass

    @abstractmethod
    def set_visibility(
        self,
        document_id: UUID,
        make_public: bool,
        token_factory: Callable[[], str],
    ) -> Optional[DocumentDescriptor]:
        """Flip visibility in one atomic statement.

        When making public, a token from token_factory is stored only if the
        document has no token yet; an existing token is always kept. A
        uniqueness collision on the fresh token is retried with a new one.
        When making private the token stays as it is (dormant).

        Returns:
            The updated descriptor, or None if the document no longer exists
        """
        pass

    @abstractmethod
    def update_metadata(
        self,
        document_id: UUID,
        title: Optional[str],
        description: Optional[str],
    ) -> Optional[DocumentDescriptor]:
        """Update descriptive fields; None leaves a field unchanged."""
        pass

    @abstractmethod
    def increment_download_count(self, document_id: UUID) -> bool:
        """Atomically add one to download_count.

        Returns:
            True if a row was updated, False if the document no longer exists
        """
        pass

    @abstractmethod
    def delete(self, document_id: UUID) -> bool:
        """Remove the descriptor. Returns False if it was already gone."""
        pass
