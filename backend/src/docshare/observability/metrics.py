"""Prometheus metrics for docshare.

Defines operational metrics for document access decisions and the
object-storage gateway.
"""

from prometheus_client import Counter

# Upload lifecycle
upload_handles_issued_total = Counter(
    "docshare_upload_handles_issued_total",
    "Total presigned upload handles issued",
)

documents_finalized_total = Counter(
    "docshare_documents_finalized_total",
    "Total uploads finalized into document descriptors",
)

documents_deleted_total = Counter(
    "docshare_documents_deleted_total",
    "Total documents deleted (blob and descriptor)",
)

# Access decisions
download_handles_issued_total = Counter(
    "docshare_download_handles_issued_total",
    "Total presigned download handles issued (counted as downloads)",
    ["path"]  # path: owner|public_id|share_token
)

access_denied_total = Counter(
    "docshare_access_denied_total",
    "Total document requests denied",
    ["operation", "kind"]  # kind: forbidden|not_found|unauthorized
)

visibility_changes_total = Counter(
    "docshare_visibility_changes_total",
    "Total visibility toggles",
    ["visibility"]  # visibility: PUBLIC|PRIVATE
)

# Downstream failures
gateway_errors_total = Counter(
    "docshare_gateway_errors_total",
    "Object storage gateway failures",
    ["operation"]  # operation: write_handle|read_handle|delete|health
)

repository_errors_total = Counter(
    "docshare_repository_errors_total",
    "Metadata repository failures",
    ["operation"]
)
