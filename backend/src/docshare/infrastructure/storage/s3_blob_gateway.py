"""S3 Blob Gateway - Implementation of BlobGatewayPort using boto3.

Issues presigned PUT/GET URLs and deletes objects on AWS S3, MinIO, and
other S3-compatible services. Presigning is a local signature operation;
only delete_object and check_health talk to the store.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ...domain.documents.errors import GatewayUnavailableError
from ...domain.documents.models import ReadHandle, WriteHandle
from ...domain.documents.ports import BlobGatewayPort
from ...domain.documents.validation import sanitize_filename
from ...observability import metrics
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)


class S3BlobGateway(BlobGatewayPort):
    """S3-compatible blob gateway using boto3.

    Storage key format: {key_prefix}/{quoted owner_id}/{time_ns}-{random hex}-{file name}

    Example:
        config = load_storage_config()
        gateway = S3BlobGateway.from_config(config)

        handle = await gateway.issue_write_handle("user-1", "notes.pdf", "application/pdf")
        # client: PUT handle.url with Content-Type: application/pdf
        read = await gateway.issue_read_handle(handle.storage_key)
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        key_prefix: str = "documents",
        upload_expires_seconds: int = 300,
        download_expires_seconds: int = 300,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        max_attempts: int = 3,
    ):
        """Initialize the S3 blob gateway.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')
            key_prefix: Top-level prefix for all document keys
            upload_expires_seconds: Lifetime of upload handles
            download_expires_seconds: Lifetime of download handles
            connect_timeout: Connection timeout per call (seconds)
            read_timeout: Read timeout per call (seconds)
            max_attempts: Attempts per call including retries

        Raises:
            GatewayUnavailableError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=BotoConfig(
                    signature_version="s3v4",
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retries={"max_attempts": max_attempts, "mode": "standard"},
                ),
            )
        except (BotoCoreError, ValueError) as e:
            logger.error(f"Failed to initialize S3 client: {e}")
            raise GatewayUnavailableError("Failed to initialize object storage client")

        self.bucket_name = bucket_name
        self.region = region
        self.key_prefix = key_prefix.strip("/")
        self.upload_expires_seconds = upload_expires_seconds
        self.download_expires_seconds = download_expires_seconds

        logger.info(
            f"Initialized S3 blob gateway: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3BlobGateway":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            key_prefix=config.key_prefix,
            upload_expires_seconds=config.upload_expires_seconds,
            download_expires_seconds=config.download_expires_seconds,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_attempts=config.max_attempts,
        )

    def owner_prefix(self, owner_id: str) -> str:
        # Quoting keeps "a/b" from nesting inside owner "a"'s namespace
        return f"{self.key_prefix}/{quote(owner_id, safe='')}/"

    async def issue_write_handle(
        self,
        owner_id: str,
        file_name: str,
        content_type: str,
    ) -> WriteHandle:
        """Generate a presigned PUT URL for a fresh key in the owner's namespace.

        Raises:
            GatewayUnavailableError: If URL generation fails
        """
        storage_key = self._generate_storage_key(owner_id, file_name)

        try:
            url = self.s3_client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": storage_key,
                    "ContentType": content_type,
                },
                ExpiresIn=self.upload_expires_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            metrics.gateway_errors_total.labels(operation="write_handle").inc()
            logger.error(f"Presigned upload URL generation failed: owner_id={owner_id}, error={e}")
            raise GatewayUnavailableError("Could not issue an upload handle")

        logger.debug(f"Issued upload handle: owner_id={owner_id}, expires_in={self.upload_expires_seconds}s")
        return WriteHandle(
            url=url,
            storage_key=storage_key,
            content_type=content_type,
            expires_at=self._expiry(self.upload_expires_seconds),
        )

    async def issue_read_handle(self, storage_key: str) -> ReadHandle:
        """Generate a presigned GET URL. Does not check that the object exists.

        Raises:
            GatewayUnavailableError: If URL generation fails
        """
        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": storage_key,
                },
                ExpiresIn=self.download_expires_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            metrics.gateway_errors_total.labels(operation="read_handle").inc()
            logger.error(f"Presigned download URL generation failed: error={e}")
            raise GatewayUnavailableError("Could not issue a download handle")

        return ReadHandle(url=url, expires_at=self._expiry(self.download_expires_seconds))

    async def delete_object(self, storage_key: str) -> None:
        """Delete an object. Missing objects count as deleted.

        Raises:
            GatewayUnavailableError: If the store could not confirm deletion
        """
        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                logger.info("Object already absent on delete")
                return
            metrics.gateway_errors_total.labels(operation="delete").inc()
            logger.error(f"S3 deletion failed: error={error_code}")
            raise GatewayUnavailableError("Could not delete the stored object")
        except BotoCoreError as e:
            metrics.gateway_errors_total.labels(operation="delete").inc()
            logger.error(f"S3 deletion failed: error={e}")
            raise GatewayUnavailableError("Could not delete the stored object")

        logger.info("Deleted stored object")

    async def check_health(self) -> bool:
        """Check that the configured bucket is reachable (HEAD bucket)."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True
        except (ClientError, BotoCoreError) as e:
            metrics.gateway_errors_total.labels(operation="health").inc()
            logger.warning(f"Object storage health check failed: bucket={self.bucket_name}, error={e}")
            return False

    def _generate_storage_key(self, owner_id: str, file_name: str) -> str:
        """Generate a collision-resistant key inside the owner's namespace.

        Example:
            >>> gateway._generate_storage_key("user-1", "week 3.pdf")
            'documents/user-1/1767225600000000000-9f86d081-week_3.pdf'
        """
        nonce = f"{time.time_ns()}-{secrets.token_hex(4)}"
        return f"{self.owner_prefix(owner_id)}{nonce}-{sanitize_filename(file_name)}"

    @staticmethod
    def _expiry(seconds: int) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=seconds)
