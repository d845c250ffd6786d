"""Observability module for docshare.

Provides structured logging, request correlation, metrics, and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    access_denied_total,
    documents_deleted_total,
    documents_finalized_total,
    download_handles_issued_total,
    gateway_errors_total,
    repository_errors_total,
    upload_handles_issued_total,
    visibility_changes_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id, resolve_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "access_denied_total",
    "documents_deleted_total",
    "documents_finalized_total",
    "download_handles_issued_total",
    "gateway_errors_total",
    "repository_errors_total",
    "upload_handles_issued_total",
    "visibility_changes_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "resolve_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
