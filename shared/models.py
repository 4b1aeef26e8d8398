"""
Data models for cloud file records and client configuration.

This module defines the core data structures used throughout the upload
client for representing remote records and their lifecycle.
"""

from dataclasses import dataclass, asdict, field, fields
from typing import List, Dict, Optional, Any
from enum import Enum
import re

from shared.constants import API_PATH_TEMPLATE


class CloudFileState(Enum):
    """Lifecycle states of a remote record (values are the API's wire spelling)."""
    RESERVED = "reserved"
    TRANSFERRED = "transfered"
    COMPLETED = "completed"


STATE_ORDER = (
    CloudFileState.RESERVED,
    CloudFileState.TRANSFERRED,
    CloudFileState.COMPLETED,
)


def infer_state_history(state: Any) -> List[CloudFileState]:
    """
    Derive the forward-closed history for a state.

    Args:
        state: A CloudFileState, its wire value, or anything else

    Returns:
        Every state up to and including ``state``; empty for unknown states
    """
    try:
        current = state if isinstance(state, CloudFileState) else CloudFileState(state)
    except ValueError:
        return []
    return list(STATE_ORDER[:STATE_ORDER.index(current) + 1])


_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


@dataclass
class CloudFileRecord:
    """
    Represents the remote record for one stored asset.

    Only ``md5`` and ``state`` drive client behaviour. Everything else is
    owned by the remote system and passed through untouched; keys this
    client does not know about are kept in ``extra``.

    Attributes:
        md5: Uppercase hex MD5 of the file's bytes (primary key)
        state: Current lifecycle state, None for unknown values
        asset: Remote object filename, None until transferred
        content_type: MIME type recorded by the server
        filesize: Size in bytes
    """
    md5: str
    state: Optional[CloudFileState] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    asset: Optional[str] = None
    content_type: Optional[str] = None
    filesize: Optional[int] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    nsfw: bool = False
    secured: bool = False
    peepy: bool = False
    shared: bool = False
    delicate: bool = False
    deletable: bool = False
    url: Optional[str] = None
    user_uuid: Optional[str] = None
    folder_uuid: Optional[str] = None
    bucket_uuid: Optional[str] = None
    bucket_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_viewed_at: Optional[str] = None
    date_aquired_at: Optional[str] = None
    duration: Optional[float] = None
    year: Optional[int] = None
    num_plays: Optional[int] = None
    artwork_md5: Optional[str] = None
    metadata: List[Dict[str, Any]] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def state_history(self) -> List[CloudFileState]:
        """Forward-closed history, always recomputed from ``state``."""
        return infer_state_history(self.state)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to the API's dictionary shape."""
        data = asdict(self)
        extra = data.pop('extra')
        data['state'] = self.state.value if self.state else None
        data['state_history'] = [s.value for s in self.state_history]
        data.update(extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CloudFileRecord':
        """Create record from an API payload (snake or camel case keys)."""
        field_names = {f.name for f in fields(cls)} - {'extra'}
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name == 'state_history':
                # derived, never trusted from the wire
                continue
            if name in field_names:
                known[name] = value
            else:
                extra[key] = value

        try:
            known['state'] = CloudFileState(known.get('state'))
        except ValueError:
            known['state'] = None
        known['md5'] = (known.get('md5') or '').upper()
        known['metadata'] = known.get('metadata') or []
        return cls(extra=extra, **known)


@dataclass
class UploadConfig:
    """
    Client configuration, read from the environment.

    Holds credentials for the object store and the record API.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    bucket_uuid: str
    endpoint: str
    region: str
    upload_server_host: str
    user_token: str

    @property
    def api_base_url(self) -> str:
        return self.upload_server_host.rstrip('/') + API_PATH_TEMPLATE.format(bucket_uuid=self.bucket_uuid)

    @property
    def endpoint_url(self) -> str:
        """Endpoint with a scheme, as boto3 expects it."""
        if '://' in self.endpoint:
            return self.endpoint
        return f"https://{self.endpoint}"

    @property
    def public_host(self) -> str:
        """Virtual-hosted style host serving public objects."""
        host = self.endpoint_url.split('://', 1)[1].rstrip('/')
        return f"{self.bucket_name}.{host}"
