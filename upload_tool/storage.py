"""
S3-compatible object store access.

Thin wrapper around a boto3 S3 client bound to one bucket. Works with any
S3-compatible endpoint (Wasabi, MinIO, AWS S3, Cloudflare R2).
"""

from typing import Any, BinaryIO, Dict, Optional

import boto3
from boto3.s3.transfer import TransferConfig

from shared.constants import PUBLIC_READ_ACL, UPLOAD_CHUNK_SIZE
from shared.models import UploadConfig


class ObjectStore:
    """
    Bucket-scoped object operations used by the transfer engine.

    Storage errors surface as botocore ``ClientError``/``BotoCoreError`` and
    are classified by the caller.
    """

    def __init__(self, config: UploadConfig, s3_client: Optional[Any] = None):
        self.bucket_name = config.bucket_name
        self.s3_client = s3_client or boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
        )
        self.transfer_config = TransferConfig(
            multipart_threshold=UPLOAD_CHUNK_SIZE,
            multipart_chunksize=UPLOAD_CHUNK_SIZE,
        )

    def put_object(self, remote_key: str, body: bytes,
                   content_type: Optional[str] = None) -> Dict[str, Any]:
        """Single PUT with public-read visibility; returns the raw response."""
        kwargs = {
            'ACL': PUBLIC_READ_ACL,
            'Body': body,
            'Bucket': self.bucket_name,
            'Key': remote_key,
        }
        if content_type:
            kwargs['ContentType'] = content_type
        return self.s3_client.put_object(**kwargs)

    def upload_stream(self, fileobj: BinaryIO, remote_key: str,
                      content_type: Optional[str] = None) -> None:
        """
        Managed upload of a non-seekable stream.

        Streams shorter than ``UPLOAD_CHUNK_SIZE`` go up as a single PUT,
        longer ones as a multipart upload in ``UPLOAD_CHUNK_SIZE`` parts.
        """
        extra_args = {'ACL': PUBLIC_READ_ACL}
        if content_type:
            extra_args['ContentType'] = content_type
        self.s3_client.upload_fileobj(
            fileobj, self.bucket_name, remote_key,
            ExtraArgs=extra_args,
            Config=self.transfer_config,
        )

    def head_object(self, remote_key: str) -> Dict[str, Any]:
        return self.s3_client.head_object(Bucket=self.bucket_name, Key=remote_key)

    def copy_object(self, source_key: str, dest_key: str) -> None:
        """Server-side copy within the bucket (multipart above 5GB)."""
        self.s3_client.copy(
            {'Bucket': self.bucket_name, 'Key': source_key},
            self.bucket_name, dest_key,
            ExtraArgs={'ACL': PUBLIC_READ_ACL, 'MetadataDirective': 'COPY'},
            Config=self.transfer_config,
        )

    def delete_object(self, remote_key: str) -> None:
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=remote_key)
