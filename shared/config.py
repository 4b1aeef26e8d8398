"""
Environment-backed configuration for the upload client.

Values are read from the process environment (a local ``.env`` file is
loaded first when present) and validated once; the validated config is
cached until ``reset_config`` is called.
"""

import os
from typing import Optional

from dotenv import load_dotenv

from shared.constants import REQUIRED_ENV_VARS
from shared.models import UploadConfig


class ConfigurationError(Exception):
    """Raised when required environment variables are missing."""


_config: Optional[UploadConfig] = None


def validate_env() -> UploadConfig:
    """
    Validate that all required environment variables are present.

    Returns:
        UploadConfig built from the environment

    Raises:
        ConfigurationError: If any required variable is missing or blank
    """
    load_dotenv()
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name, '').strip()]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please ensure all required EIVU environment variables are set."
        )

    return UploadConfig(
        access_key_id=os.environ['EIVU_ACCESS_KEY_ID'],
        secret_access_key=os.environ['EIVU_SECRET_ACCESS_KEY'],
        bucket_name=os.environ['EIVU_BUCKET_NAME'],
        bucket_uuid=os.environ['EIVU_BUCKET_UUID'],
        endpoint=os.environ['EIVU_ENDPOINT'],
        region=os.environ['EIVU_REGION'],
        upload_server_host=os.environ['EIVU_UPLOAD_SERVER_HOST'],
        user_token=os.environ['EIVU_USER_TOKEN'],
    )


def get_config() -> UploadConfig:
    """Return the validated config, validating on first use."""
    global _config
    if _config is None:
        _config = validate_env()
    return _config


def reset_config() -> None:
    """Forget the cached config (used by tests)."""
    global _config
    _config = None
