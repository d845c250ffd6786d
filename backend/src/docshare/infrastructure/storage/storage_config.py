"""Storage configuration for S3-compatible object storage.

Derives the blob gateway configuration from application settings.
Supports both MinIO (development) and AWS S3 (production) with the same interface.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings, get_settings


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket name for storing documents
        region: AWS region (default: 'us-east-1')
        key_prefix: Top-level key prefix for all document blobs
        upload_expires_seconds: Lifetime of presigned upload URLs
        download_expires_seconds: Lifetime of presigned download URLs
        connect_timeout: Seconds to wait for a connection to the store
        read_timeout: Seconds to wait for a response from the store
        max_attempts: Total attempts per call, including retries
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    key_prefix: str = "documents"
    upload_expires_seconds: int = 300
    download_expires_seconds: int = 300
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 3


def load_storage_config(settings: Optional[Settings] = None) -> StorageConfig:
    """Build the storage configuration from application settings.

    Environment Variables (through Settings):
        S3_ENDPOINT_URL: MinIO endpoint URL; leave empty for AWS S3
        S3_ACCESS_KEY_ID / S3_SECRET_ACCESS_KEY: Credentials
        S3_BUCKET_NAME: Bucket name
        S3_REGION: AWS region
        STORAGE_KEY_PREFIX: Key prefix for document blobs

    Returns:
        StorageConfig: Validated storage configuration

    Raises:
        ValueError: If the configuration is invalid
    """
    settings = settings or get_settings()

    config = StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
        key_prefix=settings.STORAGE_KEY_PREFIX,
        upload_expires_seconds=settings.UPLOAD_URL_EXPIRES_SECONDS,
        download_expires_seconds=settings.DOWNLOAD_URL_EXPIRES_SECONDS,
        connect_timeout=settings.S3_CONNECT_TIMEOUT_SECONDS,
        read_timeout=settings.S3_READ_TIMEOUT_SECONDS,
        max_attempts=settings.S3_MAX_ATTEMPTS,
    )
    validate_storage_config(config)
    return config


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Args:
        config: Storage configuration to validate

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if not config.key_prefix or "/" in config.key_prefix.strip("/"):
        raise ValueError("Storage key_prefix must be a single non-empty path segment")

    if config.upload_expires_seconds <= 0 or config.download_expires_seconds <= 0:
        raise ValueError("Presigned URL lifetimes must be positive")

    # Handles are meant to be short-lived; S3 rejects anything over 7 days
    if max(config.upload_expires_seconds, config.download_expires_seconds) > 7 * 24 * 3600:
        raise ValueError("Presigned URL lifetimes cannot exceed 7 days")

    if config.endpoint_url:
        # MinIO configuration
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    else:
        # AWS S3 configuration
        if not config.region:
            raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")
