"""
Cloud file lifecycle: reservation, transfer bookkeeping and completion.

A CloudFile pairs a remote record with the local file it came from. The
record's hash is its identity, so reserving a hash that already exists
never creates a second record: the existing one is fetched and returned.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from shared.config import get_config
from shared.constants import RESOURCE_TYPE_SECURED
from shared.models import CloudFileRecord, CloudFileState, UploadConfig
from .api import RecordClient
from .errors import PreconditionError, ValidationError
from .utils import MimeInfo, detect_mime, generate_md5, resolve_path, validate_file_path

logger = logging.getLogger(__name__)


class CloudFile:
    """
    Represents a cloud file with its local and remote attributes.

    Manages the reserved -> transfered -> completed lifecycle of one upload.
    """

    def __init__(self, remote_attr: CloudFileRecord, local_path_to_file: Optional[str] = None,
                 resource_type: Optional[str] = None, api: Optional[RecordClient] = None):
        self.remote_attr = remote_attr
        self.local_path_to_file = local_path_to_file
        self.resource_type = resource_type
        self._api = api
        if not self.resource_type and self.remote_attr.content_type:
            self.resource_type = self.remote_attr.content_type.split('/')[0]

    @property
    def api(self) -> RecordClient:
        if self._api is None:
            self._api = RecordClient(get_config())
        return self._api

    @property
    def md5(self) -> str:
        return self.remote_attr.md5

    @property
    def state_history(self) -> List[CloudFileState]:
        return self.remote_attr.state_history

    def __repr__(self) -> str:
        state = self.remote_attr.state.value if self.remote_attr.state else None
        return f"<CloudFile {self.md5} {state} {self.resource_type}>"

    # -- lookup / reservation -------------------------------------------------

    @staticmethod
    def _one_of(operation: str, path_to_file: Optional[str],
                md5: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """Check that exactly one of ``path_to_file`` and ``md5`` was given."""
        if path_to_file is None and md5 is None:
            raise ValidationError(f"CloudFile#{operation} requires either md5 or path_to_file to be set")
        if path_to_file is not None and md5 is not None:
            raise ValidationError(f"CloudFile#{operation} requires only one of md5 or path_to_file to be set")
        if path_to_file is not None:
            return validate_file_path(path_to_file), None
        if not isinstance(md5, str) or not md5.strip():
            raise ValidationError(f"CloudFile#{operation} requires md5 to be a non-empty string")
        return None, md5.strip().upper()

    @classmethod
    def fetch(cls, md5: str, api: Optional[RecordClient] = None) -> 'CloudFile':
        """
        Fetch an existing cloud file by its MD5 hash.

        Raises:
            NotFoundError: If no record exists for ``md5``
        """
        client = api or RecordClient(get_config())
        return cls(remote_attr=client.fetch(md5.upper()), api=client)

    @classmethod
    def reserve(cls, path_to_file: Optional[str] = None, md5: Optional[str] = None,
                nsfw: bool = False, secured: bool = False,
                api: Optional[RecordClient] = None) -> 'CloudFile':
        """
        Reserve a record, or return the existing one for the same hash.

        Args:
            path_to_file: Local file to hash (exclusive with ``md5``)
            md5: Known content hash (exclusive with ``path_to_file``)
            nsfw: Whether the file contains NSFW content
            secured: Whether the file should be secured/private
            api: Record client, built from the environment when omitted

        Returns:
            A CloudFile for the reserved or already existing record
        """
        return cls._reserve_or_fetch('reserve', path_to_file, md5, nsfw, secured, api)

    @classmethod
    def fetch_or_reserve_by(cls, path_to_file: Optional[str] = None, md5: Optional[str] = None,
                            nsfw: bool = False, secured: bool = False,
                            api: Optional[RecordClient] = None) -> 'CloudFile':
        """Attempt a reservation; on conflict resolve to the existing record."""
        return cls._reserve_or_fetch('fetchOrReserveBy', path_to_file, md5, nsfw, secured, api)

    @classmethod
    def _reserve_or_fetch(cls, operation: str, path_to_file: Optional[str], md5: Optional[str],
                          nsfw: bool, secured: bool, api: Optional[RecordClient]) -> 'CloudFile':
        path_to_file, md5 = cls._one_of(operation, path_to_file, md5)

        mime: Optional[MimeInfo] = None
        if path_to_file is not None:
            # both checks must pass before anything goes over the wire
            mime = detect_mime(path_to_file)
            md5 = generate_md5(path_to_file)

        client = api or RecordClient(get_config())
        reservation = client.reserve(md5, nsfw=nsfw, secured=secured)
        record = reservation.record
        if reservation.exists:
            # first reservation of a hash is authoritative
            record = client.fetch(reservation.md5)

        cloud_file = cls(remote_attr=record, local_path_to_file=path_to_file, api=client)
        if mime is not None:
            cloud_file.identify_content_type(mime)
        return cloud_file

    # -- state ------------------------------------------------------------------

    def reserved(self) -> bool:
        return self.remote_attr.state == CloudFileState.RESERVED

    def transfered(self) -> bool:
        return self.remote_attr.state == CloudFileState.TRANSFERRED

    def completed(self) -> bool:
        return self.remote_attr.state == CloudFileState.COMPLETED

    def identify_content_type(self, mime: Optional[MimeInfo] = None) -> None:
        """
        Set content type and resource type from the local file.

        Raises:
            PreconditionError: If ``local_path_to_file`` is not set
        """
        if not self.local_path_to_file:
            raise PreconditionError("CloudFile#identify_content_type requires local_path_to_file to be set")
        mime = mime or detect_mime(self.local_path_to_file)
        self.resource_type = RESOURCE_TYPE_SECURED if self.remote_attr.peepy else mime.mediatype
        self.remote_attr.content_type = mime.type

    def reset(self) -> 'CloudFile':
        """Return the record to reserved, dropping transfer-stage fields."""
        record = self.api.reset(self.md5, self.remote_attr.content_type)
        record.state = CloudFileState.RESERVED
        record.asset = None
        record.content_type = None
        record.filesize = None
        self.remote_attr = record
        return self

    def transfer(self, asset: str, filesize: int) -> 'CloudFile':
        """
        Mark the file as transferred and record asset information.

        Raises:
            PreconditionError: If the content type is not set
        """
        if not self.remote_attr.content_type:
            raise PreconditionError("CloudFile#transfer requires content_type to be set")
        self.remote_attr = self.api.transfer(self.md5, asset, self.remote_attr.content_type, filesize)
        return self

    def complete(self, data_profile: Dict[str, Any]) -> 'CloudFile':
        """Attach descriptive metadata, moving the record to completed."""
        self.remote_attr = self.api.complete(self.md5, data_profile)
        return self

    # -- location ---------------------------------------------------------------

    def remote_path(self, asset: Optional[str] = None) -> str:
        return resolve_path(self.resource_type, self.md5, asset if asset is not None else self.remote_attr.asset)

    def public_url(self, asset: Optional[str] = None, config: Optional[UploadConfig] = None) -> str:
        config = config or get_config()
        scheme = config.endpoint_url.split('://', 1)[0]
        return f"{scheme}://{config.public_host}/{self.remote_path(asset)}"

    def url(self, config: Optional[UploadConfig] = None) -> Optional[str]:
        """Public URL of the stored object, None while only reserved."""
        if self.reserved():
            return None
        return self.public_url(config=config)
