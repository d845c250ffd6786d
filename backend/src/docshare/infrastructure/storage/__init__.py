from .s3_blob_gateway import S3BlobGateway
from .storage_config import StorageConfig, load_storage_config, validate_storage_config

__all__ = ["S3BlobGateway", "StorageConfig", "load_storage_config", "validate_storage_config"]
