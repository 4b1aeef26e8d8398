"""
Transfer engine: moves file bytes into the object store.

Local files are read whole and sent with a single PUT so the client's
retries can replay the body. Remote URLs are streamed through a staging
key because their hash is only known once every byte has gone by; once
the record is known the object is promoted to its canonical key, or the
staging copy is discarded when the content is already stored.

Object store failures (botocore errors) are logged and reported as a False
result, with the details kept in ``S3Uploader.last_failure``. Everything
else raises.
"""

import hashlib
import logging
import uuid
from typing import Any, BinaryIO, Dict, Optional
from urllib.parse import urlparse

import requests
from botocore.exceptions import BotoCoreError, ClientError

from shared.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_NETWORK_TIMEOUT,
    ENTITY_TOO_LARGE_MESSAGE,
    RESOURCE_TYPE_STAGING,
    UPLOAD_CHUNK_SIZE,
)
from .cloud_file import CloudFile
from .errors import FileAccessError, PreconditionError, StorageTransferFailure, ValidationError
from .storage import ObjectStore
from .utils import MimeInfo, classify_mime, cleansed_asset_name, detect_mime, etag_to_md5, resolve_path

logger = logging.getLogger(__name__)


class HashingReader:
    """
    File-like wrapper that digests a stream as the uploader reads it.

    Besides the whole-stream MD5 it keeps one MD5 per ``part_size`` block,
    which is what S3 folds into the ETag of a multipart upload.
    """

    def __init__(self, raw: BinaryIO, part_size: int = UPLOAD_CHUNK_SIZE):
        self.raw = raw
        self.part_size = part_size
        self.bytes_read = 0
        self._md5 = hashlib.md5()
        self._part = hashlib.md5()
        self._part_bytes = 0
        self._part_digests = []

    def read(self, size: int = -1) -> bytes:
        data = self.raw.read() if size is None or size < 0 else self.raw.read(size)
        self._consume(data)
        return data

    def _consume(self, data: bytes) -> None:
        self._md5.update(data)
        self.bytes_read += len(data)
        view = memoryview(data)
        while view:
            take = min(len(view), self.part_size - self._part_bytes)
            self._part.update(view[:take])
            self._part_bytes += take
            view = view[take:]
            if self._part_bytes == self.part_size:
                self._part_digests.append(self._part.digest())
                self._part = hashlib.md5()
                self._part_bytes = 0

    @property
    def hexdigest(self) -> str:
        return self._md5.hexdigest().upper()

    def multipart_etag(self) -> str:
        digests = list(self._part_digests)
        if self._part_bytes:
            digests.append(self._part.digest())
        return f"{hashlib.md5(b''.join(digests)).hexdigest().upper()}-{len(digests)}"

    def matches(self, etag: Optional[str]) -> bool:
        """True when ``etag`` is the single-part or multipart tag of this stream."""
        tag = etag_to_md5(etag)
        if '-' in tag:
            return tag == self.multipart_etag()
        return tag == self.hexdigest


class S3Uploader:
    """Uploads the bytes behind a CloudFile to its content-addressed key."""

    def __init__(self, cloud_file: CloudFile, store: ObjectStore, asset: Optional[str] = None):
        self.cloud_file = cloud_file
        self.store = store
        self.asset = asset if asset is not None else cloud_file.remote_attr.asset
        self.last_failure: Optional[StorageTransferFailure] = None
        self.staging_key: Optional[str] = None
        self.media_type: Optional[str] = None

    def generate_remote_path(self) -> str:
        return resolve_path(self.cloud_file.resource_type, self.cloud_file.md5, self.asset)

    def _record_failure(self, code: str, message: str, remote_key: str) -> bool:
        self.last_failure = StorageTransferFailure(code, message, remote_key)
        logger.error("%s (md5=%s, key=%s)", message, self.cloud_file.md5, remote_key)
        return False

    def _storage_failure(self, error: Exception, remote_key: str) -> bool:
        if isinstance(error, ClientError):
            code = error.response.get('Error', {}).get('Code', 'Unknown')
        else:
            code = type(error).__name__
        if code == 'EntityTooLarge':
            message = ENTITY_TOO_LARGE_MESSAGE
        else:
            message = f"Error from S3 while uploading object to {self.store.bucket_name}. {code}: {error}"
        return self._record_failure(code, message, remote_key)

    def validate_remote_md5(self, response: Dict[str, Any], remote_key: str,
                            expected_md5: Optional[str] = None) -> bool:
        """
        Check a PUT response against the expected content hash.

        Both the status must be a success and the ETag must equal the hash
        (case-insensitive); a 200 with a different ETag is a failure.
        """
        expected = (expected_md5 or self.cloud_file.md5).upper()
        status = response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)
        etag = etag_to_md5(response.get('ETag'))
        if 200 <= status < 300 and etag == expected:
            return True
        return self._record_failure(
            'ChecksumMismatch',
            f"Remote checksum {etag or 'missing'} (status {status}) does not match {expected}",
            remote_key,
        )

    def put_local_file(self) -> bool:
        """
        Upload the local file with a single public-read PUT.

        Returns:
            True if the stored object validated against the record's hash
        """
        path_to_file = self.cloud_file.local_path_to_file
        if not path_to_file:
            raise PreconditionError("S3Uploader#put_local_file requires local_path_to_file to be set")
        remote_key = self.generate_remote_path()

        try:
            with open(path_to_file, 'rb') as f:
                body = f.read()
        except OSError as e:
            raise FileAccessError(f"Could not read {path_to_file}: {e}") from e

        logger.info("Uploading %s to %s", path_to_file, remote_key)
        try:
            response = self.store.put_object(remote_key, body, self.cloud_file.remote_attr.content_type)
        except (ClientError, BotoCoreError) as e:
            return self._storage_failure(e, remote_key)

        logger.debug("PUT %s -> %s", remote_key, response)
        return self.validate_remote_md5(response, remote_key)

    def _classify_remote(self, content_type: Optional[str]) -> MimeInfo:
        if content_type and content_type != DEFAULT_CONTENT_TYPE:
            return classify_mime(content_type, self.asset)
        try:
            return detect_mime(self.asset)
        except ValidationError:
            return classify_mime(content_type or DEFAULT_CONTENT_TYPE, self.asset)

    def put_remote_file(self, url: str) -> bool:
        """
        Stream a remote URL into the staging area without buffering it.

        The bytes land under ``staging/<placeholder>/`` first. Once the
        stream is finished its MD5 becomes the record's hash and the
        integrity tag is checked against it. The object stays staged until
        ``promote`` or ``discard_staging`` is called.

        Returns:
            True if the staged object validated
        """
        record = self.cloud_file.remote_attr
        record.md5 = uuid.uuid4().hex.upper()
        self.cloud_file.resource_type = RESOURCE_TYPE_STAGING
        if not self.asset:
            self.asset = cleansed_asset_name(urlparse(url).path) or record.md5
        staging_key = self.generate_remote_path()
        self.staging_key = staging_key

        logger.info("Streaming %s to %s", url, staging_key)
        with requests.get(url, stream=True, timeout=DEFAULT_NETWORK_TIMEOUT) as response:
            response.raise_for_status()
            content_type = response.headers.get('Content-Type', '').split(';')[0].strip() or None
            response.raw.decode_content = True
            reader = HashingReader(response.raw)
            try:
                self.store.upload_stream(reader, staging_key, content_type)
                head = self.store.head_object(staging_key)
            except (ClientError, BotoCoreError) as e:
                return self._storage_failure(e, staging_key)

        if not reader.matches(head.get('ETag')):
            return self._record_failure(
                'ChecksumMismatch',
                f"Integrity tag {etag_to_md5(head.get('ETag')) or 'missing'} does not match "
                f"streamed content {reader.hexdigest}",
                staging_key,
            )

        mime = self._classify_remote(content_type)
        record.md5 = reader.hexdigest
        record.filesize = reader.bytes_read
        record.content_type = mime.type
        self.media_type = mime.mediatype
        return True

    def promote(self, resource_type: Optional[str] = None) -> bool:
        """
        Copy the staged object to its canonical key and drop the staging copy.

        Args:
            resource_type: Target resource type, the detected media type
                when omitted

        Returns:
            True if the canonical copy was written
        """
        if not self.staging_key or not self.media_type:
            raise PreconditionError("S3Uploader#promote requires a validated staged object")
        resource_type = resource_type or self.media_type
        canonical_key = resolve_path(resource_type, self.cloud_file.md5, self.asset)
        logger.info("Promoting %s to %s", self.staging_key, canonical_key)

        try:
            self.store.copy_object(self.staging_key, canonical_key)
        except (ClientError, BotoCoreError) as e:
            return self._storage_failure(e, canonical_key)
        self.cloud_file.resource_type = resource_type
        self.discard_staging()
        return True

    def discard_staging(self) -> None:
        """Delete the staged object; a failed delete only leaves it behind."""
        if not self.staging_key:
            return
        try:
            self.store.delete_object(self.staging_key)
        except (ClientError, BotoCoreError) as e:
            logger.warning("Staging object %s left behind: %s", self.staging_key, e)
