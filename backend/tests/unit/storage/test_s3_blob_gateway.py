"""Unit tests for S3BlobGateway using moto

Tests cover presigned upload/download handles, owner-scoped key generation,
idempotent deletion and the bucket health check against a mocked S3.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from moto import mock_aws

from docshare.domain.documents.errors import GatewayUnavailableError
from docshare.infrastructure.storage import S3BlobGateway, StorageConfig


# Test constants
TEST_BUCKET = "test-docshare-bucket"
TEST_REGION = "us-east-1"
TEST_ACCESS_KEY = "test-access-key"
TEST_SECRET_KEY = "test-secret-key"


@pytest.fixture
def s3_client():
    """Mock S3 environment with the test bucket created"""
    with mock_aws():
        client = boto3.client(
            "s3",
            region_name=TEST_REGION,
            aws_access_key_id=TEST_ACCESS_KEY,
            aws_secret_access_key=TEST_SECRET_KEY,
        )
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def blob_gateway(s3_client):
    """S3BlobGateway against the mocked bucket"""
    return S3BlobGateway(
        endpoint_url=None,  # AWS S3 (moto mocks this)
        access_key=TEST_ACCESS_KEY,
        secret_key=TEST_SECRET_KEY,
        bucket_name=TEST_BUCKET,
        region=TEST_REGION,
        upload_expires_seconds=300,
        download_expires_seconds=120,
    )


class TestS3BlobGatewayInitialization:
    """Test gateway construction"""

    def test_from_config(self):
        with mock_aws():
            config = StorageConfig(
                endpoint_url=None,
                access_key=TEST_ACCESS_KEY,
                secret_key=TEST_SECRET_KEY,
                bucket_name=TEST_BUCKET,
                region=TEST_REGION,
                key_prefix="/files/",
            )

            gateway = S3BlobGateway.from_config(config)

            assert gateway.bucket_name == TEST_BUCKET
            assert gateway.key_prefix == "files"
            assert gateway.owner_prefix("user-1") == "files/user-1/"

    def test_owner_prefix_quotes_owner_id(self, blob_gateway):
        assert blob_gateway.owner_prefix("a/b") == "documents/a%2Fb/"
        assert not blob_gateway.owner_prefix("a/b").startswith(blob_gateway.owner_prefix("a"))


class TestWriteHandles:
    """Test presigned upload URLs"""

    @pytest.mark.asyncio
    async def test_issue_write_handle(self, blob_gateway):
        handle = await blob_gateway.issue_write_handle("user-1", "week 3.pdf", "application/pdf")

        assert handle.method == "PUT"
        assert handle.content_type == "application/pdf"
        assert handle.storage_key.startswith("documents/user-1/")
        assert handle.storage_key.endswith("-week_3.pdf")
        assert TEST_BUCKET in handle.url
        assert handle.expires_at > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_url_carries_expiry(self, blob_gateway):
        handle = await blob_gateway.issue_write_handle("user-1", "notes.pdf", "application/pdf")

        query = parse_qs(urlparse(handle.url).query)
        assert query["X-Amz-Expires"] == ["300"]

    @pytest.mark.asyncio
    async def test_keys_are_unique(self, blob_gateway):
        first = await blob_gateway.issue_write_handle("user-1", "notes.pdf", "application/pdf")
        second = await blob_gateway.issue_write_handle("user-1", "notes.pdf", "application/pdf")

        assert first.storage_key != second.storage_key

    @pytest.mark.asyncio
    async def test_file_name_cannot_escape_owner_namespace(self, blob_gateway):
        handle = await blob_gateway.issue_write_handle("user-1", "../user-2/notes.pdf", "application/pdf")

        assert handle.storage_key.startswith("documents/user-1/")
        assert ".." not in handle.storage_key


class TestReadHandles:
    """Test presigned download URLs"""

    @pytest.mark.asyncio
    async def test_issue_read_handle(self, blob_gateway, s3_client):
        s3_client.put_object(Bucket=TEST_BUCKET, Key="documents/user-1/1-notes.pdf", Body=b"%PDF")

        handle = await blob_gateway.issue_read_handle("documents/user-1/1-notes.pdf")

        query = parse_qs(urlparse(handle.url).query)
        assert query["X-Amz-Expires"] == ["120"]
        assert "documents/user-1/1-notes.pdf" in handle.url
        assert handle.expires_at > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_read_handle_does_not_require_object(self, blob_gateway):
        handle = await blob_gateway.issue_read_handle("documents/user-1/missing.pdf")

        assert handle.url


class TestDeleteObject:
    """Test object deletion"""

    @pytest.mark.asyncio
    async def test_delete_existing_object(self, blob_gateway, s3_client):
        s3_client.put_object(Bucket=TEST_BUCKET, Key="documents/user-1/1-notes.pdf", Body=b"%PDF")

        await blob_gateway.delete_object("documents/user-1/1-notes.pdf")

        listing = s3_client.list_objects_v2(Bucket=TEST_BUCKET)
        assert listing.get("KeyCount", 0) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_object_succeeds(self, blob_gateway):
        await blob_gateway.delete_object("documents/user-1/never-uploaded.pdf")

    @pytest.mark.asyncio
    async def test_delete_in_missing_bucket_is_unavailable(self, s3_client):
        gateway = S3BlobGateway(
            endpoint_url=None,
            access_key=TEST_ACCESS_KEY,
            secret_key=TEST_SECRET_KEY,
            bucket_name="no-such-bucket",
            region=TEST_REGION,
        )

        with pytest.raises(GatewayUnavailableError) as exc_info:
            await gateway.delete_object("documents/user-1/1-notes.pdf")

        assert exc_info.value.retryable is True


class TestHealthCheck:
    """Test bucket reachability"""

    @pytest.mark.asyncio
    async def test_healthy(self, blob_gateway):
        assert await blob_gateway.check_health() is True

    @pytest.mark.asyncio
    async def test_missing_bucket_unhealthy(self, s3_client):
        gateway = S3BlobGateway(
            endpoint_url=None,
            access_key=TEST_ACCESS_KEY,
            secret_key=TEST_SECRET_KEY,
            bucket_name="no-such-bucket",
            region=TEST_REGION,
        )

        assert await gateway.check_health() is False
