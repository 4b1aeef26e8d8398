"""
Shared constants used across the upload client.
"""

# Resource types (first segment of every remote object key)
RESOURCE_TYPE_IMAGE = "image"
RESOURCE_TYPE_AUDIO = "audio"
RESOURCE_TYPE_VIDEO = "video"
RESOURCE_TYPE_ARCHIVE = "archive"
RESOURCE_TYPE_SECURED = "secured"
RESOURCE_TYPE_STAGING = "staging"

ARCHIVE_EXTENSIONS = [
    ".zip", ".cbz", ".cbr", ".rar", ".7z", ".tar", ".gz"
]

# Content types the stdlib registry does not know about
EXTRA_MIME_TYPES = {
    ".cbz": "application/vnd.comicbook+zip",
    ".cbr": "application/vnd.comicbook-rar",
    ".7z": "application/x-7z-compressed",
    ".gz": "application/gzip",
    ".rar": "application/vnd.rar",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
    ".opus": "audio/opus",
    ".webp": "image/webp",
}

# Record API
API_PATH_TEMPLATE = "/api/upload/v1/buckets/{bucket_uuid}/"
KEY_FORMAT = "camel_lower"
CONFLICT_STATUS_CODES = (409, 422)
DEFAULT_NETWORK_TIMEOUT = 30  # seconds

# Upload settings
UPLOAD_CHUNK_SIZE = 8 * 1024 * 1024  # 8MB, multipart threshold and part size
HASH_CHUNK_SIZE = 64 * 1024  # bytes
PUBLIC_READ_ACL = "public-read"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

ENTITY_TOO_LARGE_MESSAGE = (
    "Error from S3 while uploading object. The object was too large. "
    "To upload objects larger than 5GB, use the S3 console (160GB max) "
    "or the multipart upload API (5TB max)."
)

# File naming
EIVU_YML_SUFFIX = ".eivu.yml"
COVERART_PREFIX = "coverart-extractedByEivu"

# Environment variables required by the client
REQUIRED_ENV_VARS = [
    "EIVU_ACCESS_KEY_ID",
    "EIVU_BUCKET_NAME",
    "EIVU_BUCKET_UUID",
    "EIVU_ENDPOINT",
    "EIVU_REGION",
    "EIVU_SECRET_ACCESS_KEY",
    "EIVU_UPLOAD_SERVER_HOST",
    "EIVU_USER_TOKEN",
]
