"""
Upload orchestration for single files, folders and remote URLs.

Each file runs its own pipeline in order: reserve (or fetch), transfer the
bytes, confirm the object is online, record the transfer, complete.
"""

import logging
import os
from typing import Any, Dict, Optional

import requests

from shared.config import get_config
from shared.constants import DEFAULT_NETWORK_TIMEOUT, RESOURCE_TYPE_SECURED
from shared.models import CloudFileRecord, UploadConfig
from .api import RecordClient
from .cloud_file import CloudFile
from .errors import EivuError, NotFoundError, StorageTransferFailure, ValidationError
from .s3_uploader import S3Uploader
from .storage import ObjectStore
from .utils import (
    cleansed_asset_name,
    generate_md5,
    is_eivu_yml_file,
    validate_directory_path,
    validate_file_path,
)

logger = logging.getLogger(__name__)


def build_data_profile(path_to_file: Optional[str] = None, source_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Minimal completion payload: no descriptive metadata, only provenance.

    Tag and filename metadata extraction plug in on top of this shape.
    """
    if source_url:
        metadata_list = [{'source_url': source_url}]
    else:
        metadata_list = [{'original_local_path_to_file': path_to_file}]
    return {
        'artists': [],
        'artwork_md5': None,
        'duration': None,
        'metadata_list': metadata_list,
        'name': None,
        'path_to_file': path_to_file,
        'rating': None,
        'release': {
            'artwork_md5': None,
            'bundle_pos': None,
            'name': None,
            'position': None,
            'primary_artist_name': None,
            'year': None,
        },
        'year': None,
    }


class Client:
    """Uploads local files, folders and URLs to the cloud."""

    def __init__(self, config: Optional[UploadConfig] = None, api: Optional[RecordClient] = None,
                 store: Optional[ObjectStore] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config()
        self.api = api or RecordClient(self.config)
        self.store = store or ObjectStore(self.config)
        self.session = session or requests.Session()
        self.status: Dict[str, Dict[str, str]] = {'success': {}, 'failure': {}}

    def upload_file(self, path_to_file: str, nsfw: bool = False, secured: bool = False) -> CloudFile:
        """
        Upload one local file through the full lifecycle.

        Raises:
            ValidationError: Bad path or empty file
            StorageTransferFailure: The bytes did not make it to the store
        """
        path_to_file = validate_file_path(path_to_file)
        if os.path.getsize(path_to_file) == 0:
            raise ValidationError(f"Can not upload empty file: {path_to_file}")

        asset = cleansed_asset_name(path_to_file)
        logger.info("Fetching/Reserving: %s", asset)
        cloud_file = CloudFile.fetch_or_reserve_by(
            path_to_file=path_to_file, nsfw=nsfw, secured=secured, api=self.api
        )

        if cloud_file.completed():
            logger.info("%s already uploaded (%s)", asset, cloud_file.md5)
            return cloud_file

        if cloud_file.reserved():
            filesize = os.path.getsize(path_to_file)
            uploader = S3Uploader(cloud_file, self.store, asset=asset)
            logger.info("Writing to S3: %s", uploader.generate_remote_path())
            if not uploader.put_local_file():
                raise uploader.last_failure
            self._ensure_online(cloud_file, asset, filesize)
            cloud_file.transfer(asset=asset, filesize=filesize)

        if cloud_file.transfered():
            logger.info("Completing: %s", asset)
            cloud_file.complete(build_data_profile(path_to_file=path_to_file))
        return cloud_file

    def upload_remote_file(self, url: str, asset: Optional[str] = None,
                           nsfw: bool = False, secured: bool = False) -> CloudFile:
        """
        Upload the content behind ``url`` without downloading it to disk.

        The bytes are staged first because the hash is only known after
        the stream ends. The record is then reserved or fetched, and the
        staged object is promoted only for a fresh reservation; content
        that is already stored just has its staging copy discarded.
        """
        if not isinstance(url, str) or not url.strip():
            raise ValidationError("URL must be a non-empty string")

        provisional = CloudFile(remote_attr=CloudFileRecord(md5=''), api=self.api)
        uploader = S3Uploader(provisional, self.store, asset=asset)
        if not uploader.put_remote_file(url.strip()):
            raise uploader.last_failure

        staged = provisional.remote_attr
        cloud_file = CloudFile.fetch_or_reserve_by(md5=staged.md5, nsfw=nsfw, secured=secured, api=self.api)

        if not cloud_file.reserved():
            uploader.discard_staging()
            if cloud_file.completed():
                logger.info("%s already uploaded (%s)", uploader.asset, cloud_file.md5)
                return cloud_file
        else:
            resource_type = RESOURCE_TYPE_SECURED if cloud_file.remote_attr.peepy else uploader.media_type
            if not uploader.promote(resource_type):
                raise uploader.last_failure
            cloud_file.resource_type = resource_type
            cloud_file.remote_attr.content_type = staged.content_type
            self._ensure_online(cloud_file, uploader.asset, staged.filesize)
            cloud_file.transfer(asset=uploader.asset, filesize=staged.filesize)

        if cloud_file.transfered():
            cloud_file.complete(build_data_profile(source_url=url.strip()))
        return cloud_file

    def upload_folder(self, path_to_folder: str, nsfw: bool = False,
                      secured: bool = False) -> Dict[str, Dict[str, str]]:
        """
        Upload every file under a folder, one after the other.

        Metadata sidecars are skipped. A file that fails with an upload
        error is recorded in ``status['failure']`` and the walk continues.
        """
        path_to_folder = validate_directory_path(path_to_folder)
        for root, dirs, filenames in os.walk(path_to_folder):
            dirs.sort()
            for filename in sorted(filenames):
                path_to_file = os.path.join(root, filename)
                if is_eivu_yml_file(path_to_file):
                    continue
                try:
                    cloud_file = self.upload_file(path_to_file, nsfw=nsfw, secured=secured)
                    self.status['success'][path_to_file] = cloud_file.md5
                except EivuError as e:
                    logger.error("Failed to upload %s: %s", path_to_file, e)
                    self.status['failure'][path_to_file] = str(e)
        return self.status

    def verify_upload(self, path_to_file: str) -> bool:
        """True if the file's record exists remotely and is completed."""
        md5 = generate_md5(path_to_file)
        try:
            return CloudFile.fetch(md5, api=self.api).completed()
        except NotFoundError:
            return False

    def _ensure_online(self, cloud_file: CloudFile, asset: str, filesize: int) -> None:
        url = cloud_file.public_url(asset, config=self.config)
        response = self.session.head(url, timeout=DEFAULT_NETWORK_TIMEOUT)
        remote_size = response.headers.get('Content-Length')
        if response.ok and remote_size is not None and int(remote_size) == filesize:
            return
        raise StorageTransferFailure(
            'NotOnline',
            f"{url} answered {response.status_code} with size {remote_size}, expected {filesize}",
            cloud_file.remote_path(asset),
        )
