"""docshare - access-controlled document sharing on S3-compatible storage"""

__version__ = "0.1.0"
