"""
Exception types raised by the upload client.
"""

from typing import Optional

from shared.config import ConfigurationError


class EivuError(Exception):
    """Base class for upload client errors."""


class ValidationError(EivuError, ValueError):
    """Bad or missing arguments, detected before any I/O."""


class PreconditionError(ValidationError):
    """An object is not in the state an operation requires."""


class FileAccessError(EivuError, OSError):
    """A local file could not be read."""


class NotFoundError(EivuError):
    """The remote API has no record for the requested hash."""

    def __init__(self, md5: str):
        super().__init__(f"Cloud file not found: {md5}")
        self.md5 = md5


class RemoteError(EivuError):
    """The remote API answered with an unexpected status."""

    def __init__(self, status: int, body: str, path: str = ""):
        super().__init__(f"Remote API error {status} for {path or 'request'}: {body}")
        self.status = status
        self.body = body
        self.path = path


class StorageTransferFailure(EivuError):
    """
    Object store failure during a transfer.

    Never raised by the transfer engine: it is logged and kept as the
    uploader's ``last_failure`` while the transfer returns False.
    """

    def __init__(self, code: str, message: str, remote_key: Optional[str] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.remote_key = remote_key


__all__ = [
    "ConfigurationError",
    "EivuError",
    "FileAccessError",
    "NotFoundError",
    "PreconditionError",
    "RemoteError",
    "StorageTransferFailure",
    "ValidationError",
]
