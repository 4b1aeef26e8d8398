"""
File identity and remote path helpers.

Hashing, path validation, MIME detection and the content-addressed key
layout shared by the record client and the transfer engine.
"""

import hashlib
import mimetypes
import os
import re
from collections import namedtuple
from typing import Optional

from shared.constants import (
    ARCHIVE_EXTENSIONS,
    COVERART_PREFIX,
    EIVU_YML_SUFFIX,
    EXTRA_MIME_TYPES,
    HASH_CHUNK_SIZE,
    RESOURCE_TYPE_ARCHIVE,
)
from .errors import FileAccessError, PreconditionError, ValidationError

MimeInfo = namedtuple("MimeInfo", ["type", "mediatype"])

_TAG_PATTERN = re.compile(r'\(\([^)]*\)\)')
_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]')
_COVERART_PATTERN = re.compile(rf'^({re.escape(COVERART_PREFIX)}-for[A-Za-z]+)')
_SEPARATORS = re.compile(r'[\\/]')


def _clean_path(path, empty_message: str) -> str:
    if not isinstance(path, (str, os.PathLike)):
        raise ValidationError(empty_message)
    path_str = os.fspath(path).strip()
    if not path_str:
        raise ValidationError(empty_message)
    if '..' in _SEPARATORS.split(path_str):
        raise ValidationError(f"Invalid path (path traversal detected): {path_str}")
    return path_str


def validate_file_path(path_to_file, check_exists: bool = True,
                       allow_directories: bool = False) -> str:
    """
    Validate a local file path before any I/O touches it.

    Args:
        path_to_file: Path supplied by the caller
        check_exists: Require the path to exist
        allow_directories: Accept a directory in place of a file

    Returns:
        The whitespace-trimmed path

    Raises:
        ValidationError: Blank path, ``..`` segment, missing file or directory
    """
    path_str = _clean_path(path_to_file, "File path must be a non-empty string")
    if check_exists:
        if not os.path.exists(path_str):
            raise ValidationError(f"File not found: {path_str}")
        if os.path.isdir(path_str) and not allow_directories:
            raise ValidationError(f"Expected a file but got a directory: {path_str}")
    return path_str


def validate_directory_path(path_to_folder, check_exists: bool = True) -> str:
    """Directory counterpart of ``validate_file_path``."""
    path_str = _clean_path(path_to_folder, "Directory path must be a non-empty string")
    if check_exists:
        if not os.path.exists(path_str):
            raise ValidationError(f"Directory not found: {path_str}")
        if not os.path.isdir(path_str):
            raise ValidationError(f"Expected a directory but got a file: {path_str}")
    return path_str


def generate_md5(path_to_file) -> str:
    """
    Calculate the MD5 of a file, streaming it in chunks.

    Args:
        path_to_file: Path to file

    Returns:
        Uppercase hexadecimal MD5 (32 characters)
    """
    path_str = validate_file_path(path_to_file)
    md5 = hashlib.md5()
    try:
        with open(path_str, 'rb') as f:
            for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b''):
                md5.update(chunk)
    except OSError as e:
        raise FileAccessError(f"Could not read {path_str}: {e}") from e
    return md5.hexdigest().upper()


def md5_as_folders(md5: str) -> str:
    """Split a hash into 2-character folders; an odd tail keeps the remainder."""
    return '/'.join(re.findall(r'.{1,2}', md5.upper()))


def resolve_path(resource_type: Optional[str], md5: str, asset: Optional[str] = None) -> str:
    """
    Build the content-addressed object key.

    ``image`` + ``ABCD...`` + ``photo.jpg`` -> ``image/AB/CD/.../photo.jpg``;
    without an asset the key ends with a trailing slash.

    Raises:
        PreconditionError: If ``resource_type`` is not set
    """
    if not resource_type:
        raise PreconditionError("resource_type must be set before a remote path can be computed")
    return f"{resource_type}/{md5_as_folders(md5)}/{asset or ''}"


def classify_mime(content_type: str, name: str = "") -> MimeInfo:
    """Pair a content type with the resource type it is stored under."""
    ext = os.path.splitext(name)[1].lower()
    if ext in ARCHIVE_EXTENSIONS:
        return MimeInfo(content_type, RESOURCE_TYPE_ARCHIVE)
    return MimeInfo(content_type, content_type.split('/')[0])


def detect_mime(path_to_file: str) -> MimeInfo:
    """
    Determine content type and media type from a file name.

    Raises:
        ValidationError: If the type cannot be determined
    """
    ext = os.path.splitext(path_to_file)[1].lower()
    mime = EXTRA_MIME_TYPES.get(ext) or mimetypes.guess_type(path_to_file)[0]
    if not mime:
        raise ValidationError(f"Unable to determine content type for: {path_to_file}")
    return classify_mime(mime, path_to_file)


def cleansed_asset_name(path_to_file: str) -> str:
    """
    Derive the remote asset name from a local path.

    Drops ``((tag))`` annotations and replaces anything outside
    ``[A-Za-z0-9._-]`` with an underscore. Extracted cover art keeps only
    its ``coverart-extractedByEivu-for<Kind>`` stem.
    """
    name = os.path.basename(path_to_file)

    match = _COVERART_PATTERN.match(name)
    if match:
        return match.group(1) + os.path.splitext(name)[1]

    stem, ext = os.path.splitext(name)
    stem = _TAG_PATTERN.sub('', stem).strip()
    return _UNSAFE_CHARS.sub('_', stem + ext)


def is_eivu_yml_file(path_to_file: str) -> bool:
    """True for ``<MD5>.eivu.yml`` metadata sidecars."""
    return path_to_file.lower().endswith(EIVU_YML_SUFFIX)


def etag_to_md5(etag: Optional[str]) -> str:
    """Normalize an S3 ETag (quoted, lowercase) into an uppercase digest."""
    return (etag or '').strip().strip('"').upper()
