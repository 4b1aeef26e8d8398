"""
Upload client for content-addressed, S3-compatible media storage.

- api: record API client (fetch / reserve / reset / transfer / complete)
- cloud_file: record lifecycle and reserve-or-fetch resolution
- s3_uploader: local and staged remote transfers
- client: per-file, per-folder and per-URL upload pipelines
"""

from .client import Client
from .cloud_file import CloudFile
from .s3_uploader import S3Uploader

__all__ = ["Client", "CloudFile", "S3Uploader"]
