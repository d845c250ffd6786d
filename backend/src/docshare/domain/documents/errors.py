"""Typed outcomes of access-broker operations.

Every failure the broker reports is one of these kinds. The HTTP layer maps
kinds to status codes; messages are safe to show to callers and never
contain storage keys or tokens of other documents.
"""

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    STATE_CONFLICT = "state_conflict"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    REPOSITORY_UNAVAILABLE = "repository_unavailable"


class DocumentAccessError(Exception):
    """Base exception for document access operations."""

    kind: ErrorKind
    retryable: bool = False
    default_message = "Document operation failed"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(DocumentAccessError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(DocumentAccessError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(DocumentAccessError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Document not found"


class ValidationFailedError(DocumentAccessError):
    kind = ErrorKind.VALIDATION_FAILED
    default_message = "Invalid document payload"


class StateConflictError(DocumentAccessError):
    kind = ErrorKind.STATE_CONFLICT
    default_message = "Document is not in a state that allows this operation"


class GatewayUnavailableError(DocumentAccessError):
    """Object storage could not be reached or refused the request."""
    kind = ErrorKind.GATEWAY_UNAVAILABLE
    retryable = True
    default_message = "Object storage is temporarily unavailable"


class RepositoryUnavailableError(DocumentAccessError):
    """Metadata database could not be reached or timed out."""
    kind = ErrorKind.REPOSITORY_UNAVAILABLE
    retryable = True
    default_message = "Document metadata store is temporarily unavailable"
