"""Validation of upload requests and finalize payloads"""

import os
import re
from typing import Optional, Tuple

from .errors import ValidationFailedError
from .models import NewDocument


DEFAULT_CONTENT_TYPE = "application/pdf"

SUPPORTED_CONTENT_TYPES = {
    'application/pdf',
    'text/plain',
    'text/markdown',
    'application/msword',  # .doc
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',  # .docx
    'application/epub+zip',
}

MAX_FILENAME_LENGTH = 500
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 10_000
MAX_CONTENT_TYPE_LENGTH = 100


def is_supported_content_type(content_type: Optional[str]) -> bool:
    """Check if a content type may be uploaded

    Example:
        >>> is_supported_content_type('application/pdf')
        True
        >>> is_supported_content_type('application/x-msdownload')
        False
    """
    return content_type in SUPPORTED_CONTENT_TYPES


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate declared file size is within limits

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
        return False, "File size must be an integer number of bytes"

    if size_bytes <= 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate an original filename

    Validation rules:
    - Not empty
    - Max 500 characters
    - No path traversal or directory separators
    - No null bytes or control characters

    Example:
        >>> validate_filename('notes.pdf')
        (True, None)
        >>> validate_filename('')
        (False, 'Filename cannot be empty')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > MAX_FILENAME_LENGTH:
        return False, f"Filename exceeds {MAX_FILENAME_LENGTH} characters (got {len(filename)})"

    if filename.strip() in ('.', '..') or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for use inside a storage key

    Example:
        >>> sanitize_filename('../../lecture.pdf')
        'lecture.pdf'
        >>> sanitize_filename('week 3 (draft).pdf')
        'week_3_draft_.pdf'
        >>> sanitize_filename('report..v2.pdf')
        'report.v2.pdf'
    """
    filename = os.path.basename(filename.replace('\\', '/'))

    # Replace problematic characters with underscore
    filename = re.sub(r'[^\w\s.-]', '_', filename)

    # Collapse multiple spaces/underscores
    filename = re.sub(r'[\s_]+', '_', filename)
    filename = re.sub(r'\.{2,}', '.', filename)

    # Keys are bounded; keep the extension
    if len(filename) > 200:
        name, ext = os.path.splitext(filename)
        filename = name[:200 - len(ext)] + ext

    return filename or "upload"


def validate_upload_request(file_name: Optional[str], content_type: Optional[str]) -> None:
    """Check an upload initiation request.

    Raises:
        ValidationFailedError: If the file name or content type is unacceptable
    """
    is_valid, error = validate_filename(file_name)
    if not is_valid:
        raise ValidationFailedError(error)

    if not is_supported_content_type(content_type):
        raise ValidationFailedError(f"Unsupported content type: {content_type}")


def validate_new_document(
    owner_id: str,
    owner_prefix: str,
    storage_key: Optional[str],
    title: Optional[str],
    description: Optional[str],
    file_name: Optional[str],
    size_bytes: int,
    content_type: Optional[str],
    max_size: int,
) -> NewDocument:
    """Validate a finalize payload and normalize it into a NewDocument.

    The storage key must lie inside the owner's own namespace so that one
    owner cannot register (and later read or delete) another owner's blob.

    Raises:
        ValidationFailedError: On the first invalid field
    """
    if not storage_key or not storage_key.startswith(owner_prefix):
        raise ValidationFailedError("Storage key does not belong to the caller")

    if any(part in ('.', '..') for part in storage_key.split('/')):
        raise ValidationFailedError("Storage key contains path traversal")

    title = (title or "").strip()
    if not title:
        raise ValidationFailedError("Title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationFailedError(f"Title exceeds {MAX_TITLE_LENGTH} characters")

    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailedError(f"Description exceeds {MAX_DESCRIPTION_LENGTH} characters")

    validate_upload_request(file_name, content_type)

    is_valid, error = validate_file_size(size_bytes, max_size)
    if not is_valid:
        raise ValidationFailedError(error)

    return NewDocument(
        owner_id=owner_id,
        storage_key=storage_key,
        title=title,
        description=description or None,
        file_name=file_name,
        size_bytes=size_bytes,
        content_type=content_type,
    )


def validate_metadata_update(title: Optional[str], description: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Validate owner edits of descriptive fields.

    None means "leave unchanged". Returns the normalized (title, description).
    """
    if title is not None:
        title = title.strip()
        if not title:
            raise ValidationFailedError("Title cannot be empty")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationFailedError(f"Title exceeds {MAX_TITLE_LENGTH} characters")

    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailedError(f"Description exceeds {MAX_DESCRIPTION_LENGTH} characters")

    return title, description
