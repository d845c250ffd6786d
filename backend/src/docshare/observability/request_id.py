"""Request ID management for request correlation.

The request id travels in a ContextVar so that every log line and error body
produced while serving a request carries the same id. Clients may supply
their own id in X-Request-ID; it is accepted only if it is short and made of
safe characters, since it ends up verbatim in logs and response headers.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

MAX_REQUEST_ID_LENGTH = 128

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]+$")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a client-supplied request id if acceptable, else generate one.

    Example:
        >>> resolve_request_id("req-123")
        'req-123'
        >>> len(resolve_request_id("bad\\nid"))
        36
    """
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return generate_request_id()


def get_request_id() -> str:
    """Current request id, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
