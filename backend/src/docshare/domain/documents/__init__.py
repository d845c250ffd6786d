"""Documents domain module - access decisions, upload lifecycle, sharing"""

from .access_broker import AccessBroker, generate_share_token
from .document_state import DocumentState, can_transition, ALLOWED_TRANSITIONS
from .errors import (
    DocumentAccessError,
    ErrorKind,
    ForbiddenError,
    GatewayUnavailableError,
    NotFoundError,
    RepositoryUnavailableError,
    StateConflictError,
    UnauthorizedError,
    ValidationFailedError,
)
from .models import (
    DocumentDescriptor,
    NewDocument,
    PendingUpload,
    ReadHandle,
    ShareState,
    Visibility,
    WriteHandle,
)
from .validation import (
    DEFAULT_CONTENT_TYPE,
    SUPPORTED_CONTENT_TYPES,
    is_supported_content_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)

__all__ = [
    "AccessBroker",
    "generate_share_token",
    "DocumentState",
    "can_transition",
    "ALLOWED_TRANSITIONS",
    "DocumentAccessError",
    "ErrorKind",
    "ForbiddenError",
    "GatewayUnavailableError",
    "NotFoundError",
    "RepositoryUnavailableError",
    "StateConflictError",
    "UnauthorizedError",
    "ValidationFailedError",
    "DocumentDescriptor",
    "NewDocument",
    "PendingUpload",
    "ReadHandle",
    "ShareState",
    "Visibility",
    "WriteHandle",
    "DEFAULT_CONTENT_TYPE",
    "SUPPORTED_CONTENT_TYPES",
    "is_supported_content_type",
    "sanitize_filename",
    "validate_file_size",
    "validate_filename",
]
