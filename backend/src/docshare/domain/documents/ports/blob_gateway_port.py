"""Blob Gateway Port - Domain interface for the external object store.

The access broker only ever needs three capabilities from object storage:
issue a write handle, issue a read handle, delete an object. Handles are
signed URLs with an embedded expiry; issuing one records nothing, so a
handle cannot be revoked before it expires.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod

from ..models import ReadHandle, WriteHandle


class BlobGatewayPort(ABC):
    """Port interface for short-lived object storage capabilities.

    Key Design Principles:
    - Storage keys are namespaced per owner: owner_prefix(owner) + unique suffix
    - No server-side state about issued handles
    - delete_object is idempotent
    - Any failure to talk to the store raises GatewayUnavailableError
    """

    @abstractmethod
    def owner_prefix(self, owner_id: str) -> str:
        """Return the key prefix under which all of an owner's objects live."""
        pass

    @abstractmethod
    async def issue_write_handle(
        self,
        owner_id: str,
        file_name: str,
        content_type: str,
    ) -> WriteHandle:
        """Issue a handle allowing exactly one object write.

        Generates a fresh storage key inside the owner's namespace with a
        collision-resistant suffix, so concurrent uploads by the same owner
        never collide.

        Args:
            owner_id: Identity of the uploading caller
            file_name: Original file name (sanitized into the key)
            content_type: Content-Type the upload must declare

        Returns:
            WriteHandle: Presigned URL, storage key and expiry

        Raises:
            GatewayUnavailableError: If the handle cannot be issued
        """
        pass

    @abstractmethod
    async def issue_read_handle(self, storage_key: str) -> ReadHandle:
        """Issue a handle allowing one read of the object at storage_key.

        Does not check that the object exists; a dangling key yields a
        handle that fails when used.

        Raises:
            GatewayUnavailableError: If the handle cannot be issued
        """
        pass

    @abstractmethod
    async def delete_object(self, storage_key: str) -> None:
        """Delete the object at storage_key. Deleting a missing key succeeds.

        Raises:
            GatewayUnavailableError: If the store cannot confirm the deletion
        """
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True if the backing store is reachable."""
        pass
