"""
Shared pytest fixtures.
"""

import pytest

from shared.config import reset_config
from shared.models import UploadConfig
from tests.fixtures import TEST_ENV


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def env(monkeypatch):
    """Populate every required EIVU_* variable."""
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    return TEST_ENV


@pytest.fixture
def config():
    return UploadConfig(
        access_key_id=TEST_ENV['EIVU_ACCESS_KEY_ID'],
        secret_access_key=TEST_ENV['EIVU_SECRET_ACCESS_KEY'],
        bucket_name=TEST_ENV['EIVU_BUCKET_NAME'],
        bucket_uuid=TEST_ENV['EIVU_BUCKET_UUID'],
        endpoint=TEST_ENV['EIVU_ENDPOINT'],
        region=TEST_ENV['EIVU_REGION'],
        upload_server_host=TEST_ENV['EIVU_UPLOAD_SERVER_HOST'],
        user_token=TEST_ENV['EIVU_USER_TOKEN'],
    )


@pytest.fixture
def jpg_file(tmp_path):
    """A small file whose name needs cleansing: ``ai overlords.jpg``."""
    path = tmp_path / 'ai overlords.jpg'
    path.write_bytes(b'\xff\xd8\xff\xe0 not really a jpeg \xff\xd9')
    return path
