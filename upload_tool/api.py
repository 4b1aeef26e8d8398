"""
HTTP client for the cloud file record API.

Translates status codes into domain outcomes: 404 on fetch becomes
NotFoundError, a conflict on reserve becomes ``Reservation.already_exists``,
anything else outside 2xx becomes RemoteError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from shared.constants import CONFLICT_STATUS_CODES, DEFAULT_NETWORK_TIMEOUT, KEY_FORMAT
from shared.models import CloudFileRecord, UploadConfig
from .errors import NotFoundError, RemoteError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """
    Outcome of a reserve call.

    Either ``record`` is the newly reserved record, or ``exists`` is True
    and the caller must fetch the existing record for ``md5``.
    """
    md5: str
    record: Optional[CloudFileRecord] = None
    exists: bool = False

    @classmethod
    def created(cls, record: CloudFileRecord) -> 'Reservation':
        return cls(md5=record.md5, record=record)

    @classmethod
    def already_exists(cls, md5: str) -> 'Reservation':
        return cls(md5=md5, exists=True)


class RecordClient:
    """Typed operations against ``/cloud_files/{md5}``."""

    def __init__(self, config: UploadConfig, session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_NETWORK_TIMEOUT):
        self.base_url = config.api_base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=4)
            self.session.mount('https://', adapter)
            self.session.mount('http://', adapter)
        self.session.headers.update({
            'Authorization': f"Token {config.user_token}",
            'Content-Type': 'application/json',
        })

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = self.base_url + path
        response = self.session.request(
            method, url,
            params={'keyFormat': KEY_FORMAT},
            json=payload,
            timeout=self.timeout,
        )
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    @staticmethod
    def _record(response: requests.Response, path: str) -> CloudFileRecord:
        if not response.ok:
            raise RemoteError(response.status_code, response.text, path)
        return CloudFileRecord.from_dict(response.json())

    def fetch(self, md5: str) -> CloudFileRecord:
        """
        Fetch a record by hash.

        Raises:
            NotFoundError: No record exists for ``md5``
            RemoteError: Any other non-2xx response
        """
        path = f"cloud_files/{md5}"
        response = self._request('GET', path)
        if response.status_code == 404:
            raise NotFoundError(md5)
        return self._record(response, path)

    def reserve(self, md5: str, nsfw: bool = False, secured: bool = False) -> Reservation:
        """
        Reserve a record for ``md5``.

        A conflict response is not an error: it means the hash is already
        stored and is reported as ``Reservation.already_exists``.
        """
        path = f"cloud_files/{md5}/reserve"
        response = self._request('POST', path, {'nsfw': nsfw, 'secured': secured})
        if response.status_code in CONFLICT_STATUS_CODES:
            logger.info("Record %s already exists, fetching it instead", md5)
            return Reservation.already_exists(md5)
        return Reservation.created(self._record(response, path))

    def reset(self, md5: str, content_type: Optional[str] = None) -> CloudFileRecord:
        """Return a record to the reserved state."""
        path = f"cloud_files/{md5}/reset"
        return self._record(self._request('POST', path, {'content_type': content_type}), path)

    def transfer(self, md5: str, asset: str, content_type: str, filesize: int) -> CloudFileRecord:
        """Record that the bytes for ``md5`` are stored as ``asset``."""
        path = f"cloud_files/{md5}/transfer"
        payload = {'asset': asset, 'content_type': content_type, 'filesize': filesize}
        return self._record(self._request('POST', path, payload), path)

    def complete(self, md5: str, data_profile: Dict[str, Any]) -> CloudFileRecord:
        """Attach descriptive metadata and mark the record completed."""
        path = f"cloud_files/{md5}/complete"
        return self._record(self._request('POST', path, data_profile), path)
