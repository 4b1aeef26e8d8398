"""
Tests for the transfer engine.
"""

import hashlib
import io
from unittest.mock import MagicMock, patch

import pytest
import requests
import responses
from botocore.exceptions import ClientError, EndpointConnectionError

from shared.constants import ENTITY_TOO_LARGE_MESSAGE
from shared.models import CloudFileRecord, CloudFileState
from upload_tool.cloud_file import CloudFile
from upload_tool.errors import FileAccessError, PreconditionError
from upload_tool.s3_uploader import HashingReader, S3Uploader
from upload_tool.storage import ObjectStore
from tests.fixtures import md5_of

REMOTE_URL = 'https://cdn.test/media/ai_overlords.jpg'
REMOTE_BODY = b'remote image bytes' * 100


def put_response(md5, status=200):
    return {
        'ResponseMetadata': {'HTTPStatusCode': status},
        'ETag': f'"{md5.lower()}"',
    }


def drain(fileobj, bucket, key, ExtraArgs=None, Config=None):
    while fileobj.read(1024):
        pass


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def store(config, s3_client):
    return ObjectStore(config, s3_client=s3_client)


@pytest.fixture
def local_cloud_file(jpg_file):
    record = CloudFileRecord(
        md5=md5_of(jpg_file.read_bytes()),
        state=CloudFileState.RESERVED,
        content_type='image/jpeg',
    )
    return CloudFile(record, local_path_to_file=str(jpg_file), resource_type='image')


class TestPutLocalFile:
    def test_success(self, local_cloud_file, store, s3_client, jpg_file):
        s3_client.put_object.return_value = put_response(local_cloud_file.md5)
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is True

        s3_client.put_object.assert_called_once_with(
            ACL='public-read',
            Body=jpg_file.read_bytes(),
            Bucket='eivu-test',
            Key=uploader.generate_remote_path(),
            ContentType='image/jpeg',
        )
        assert uploader.generate_remote_path().startswith('image/')
        assert uploader.generate_remote_path().endswith('/ai_overlords.jpg')
        assert uploader.last_failure is None

    def test_etag_mismatch_with_200_fails(self, local_cloud_file, store, s3_client):
        s3_client.put_object.return_value = put_response('0' * 32)
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is False
        assert uploader.last_failure.code == 'ChecksumMismatch'

    def test_bad_status_fails(self, local_cloud_file, store, s3_client):
        s3_client.put_object.return_value = put_response(local_cloud_file.md5, status=500)
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is False

    def test_entity_too_large(self, local_cloud_file, store, s3_client):
        s3_client.put_object.side_effect = ClientError(
            {'Error': {'Code': 'EntityTooLarge', 'Message': 'too big'}}, 'PutObject'
        )
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is False
        assert uploader.last_failure.code == 'EntityTooLarge'
        assert uploader.last_failure.message == ENTITY_TOO_LARGE_MESSAGE

    def test_other_storage_error(self, local_cloud_file, store, s3_client):
        s3_client.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'PutObject'
        )
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is False
        assert 'eivu-test' in uploader.last_failure.message
        assert 'AccessDenied' in uploader.last_failure.message

    def test_connection_error_is_a_storage_failure(self, local_cloud_file, store, s3_client):
        s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url='https://s3.test')
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        assert uploader.put_local_file() is False
        assert uploader.last_failure.code == 'EndpointConnectionError'

    def test_other_errors_propagate(self, local_cloud_file, store, s3_client):
        s3_client.put_object.side_effect = TypeError('bad body')
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')

        with pytest.raises(TypeError):
            uploader.put_local_file()

    def test_unreadable_file(self, local_cloud_file, store, s3_client):
        uploader = S3Uploader(local_cloud_file, store, asset='ai_overlords.jpg')
        denied = PermissionError(13, 'Permission denied')

        with patch('builtins.open', side_effect=denied):
            with pytest.raises(FileAccessError) as excinfo:
                uploader.put_local_file()

        assert excinfo.value.__cause__ is denied
        s3_client.put_object.assert_not_called()

    def test_requires_local_path(self, store):
        cloud_file = CloudFile(CloudFileRecord(md5='AB' * 16), resource_type='image')
        with pytest.raises(PreconditionError):
            S3Uploader(cloud_file, store, asset='x.jpg').put_local_file()


class TestPutRemoteFile:
    @pytest.fixture
    def provisional(self):
        return CloudFile(CloudFileRecord(md5=''))

    @pytest.fixture
    def staged(self, provisional, store, s3_client):
        s3_client.upload_fileobj.side_effect = drain
        s3_client.head_object.return_value = {'ETag': f'"{md5_of(REMOTE_BODY).lower()}"'}
        uploader = S3Uploader(provisional, store)
        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, REMOTE_URL, body=REMOTE_BODY, content_type='image/jpeg', status=200)
            assert uploader.put_remote_file(REMOTE_URL) is True
        return uploader

    def test_stages_without_promoting(self, staged, provisional, s3_client):
        assert staged.staging_key.startswith('staging/')
        assert staged.staging_key.endswith('/ai_overlords.jpg')
        assert staged.media_type == 'image'
        assert provisional.md5 == md5_of(REMOTE_BODY)
        assert provisional.resource_type == 'staging'
        assert provisional.remote_attr.filesize == len(REMOTE_BODY)
        assert provisional.remote_attr.content_type == 'image/jpeg'
        s3_client.copy.assert_not_called()
        s3_client.delete_object.assert_not_called()

    def test_promote(self, staged, provisional, s3_client):
        staging_key = staged.staging_key

        assert staged.promote() is True

        assert provisional.resource_type == 'image'
        copy_args = s3_client.copy.call_args[0]
        assert copy_args[0] == {'Bucket': 'eivu-test', 'Key': staging_key}
        assert copy_args[2] == provisional.remote_path('ai_overlords.jpg')
        s3_client.delete_object.assert_called_once_with(Bucket='eivu-test', Key=staging_key)

    def test_promote_to_secured(self, staged, provisional, s3_client):
        assert staged.promote('secured') is True
        assert s3_client.copy.call_args[0][2].startswith('secured/')
        assert provisional.resource_type == 'secured'

    def test_promote_copy_failure(self, staged, provisional, s3_client):
        s3_client.copy.side_effect = ClientError(
            {'Error': {'Code': 'InternalError', 'Message': 'oops'}}, 'CopyObject'
        )

        assert staged.promote() is False
        assert staged.last_failure.code == 'InternalError'
        assert provisional.resource_type == 'staging'
        s3_client.delete_object.assert_not_called()

    def test_staging_delete_failure_is_tolerated(self, staged, s3_client):
        s3_client.delete_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'DeleteObject'
        )

        assert staged.promote() is True
        staged.discard_staging()

    def test_promote_requires_staged_object(self, provisional, store):
        with pytest.raises(PreconditionError):
            S3Uploader(provisional, store).promote()

    @responses.activate
    def test_integrity_mismatch_keeps_staging(self, provisional, store, s3_client):
        responses.add(responses.GET, REMOTE_URL, body=REMOTE_BODY, content_type='image/jpeg', status=200)
        s3_client.upload_fileobj.side_effect = drain
        s3_client.head_object.return_value = {'ETag': '"00000000000000000000000000000000"'}
        uploader = S3Uploader(provisional, store)

        assert uploader.put_remote_file(REMOTE_URL) is False
        assert uploader.last_failure.code == 'ChecksumMismatch'
        assert provisional.resource_type == 'staging'
        s3_client.copy.assert_not_called()

    @responses.activate
    def test_upload_error_is_reported(self, provisional, store, s3_client):
        responses.add(responses.GET, REMOTE_URL, body=REMOTE_BODY, content_type='image/jpeg', status=200)
        s3_client.upload_fileobj.side_effect = ClientError(
            {'Error': {'Code': 'InternalError', 'Message': 'oops'}}, 'PutObject'
        )
        uploader = S3Uploader(provisional, store)

        assert uploader.put_remote_file(REMOTE_URL) is False
        assert uploader.last_failure.remote_key == uploader.staging_key

    @responses.activate
    def test_unreachable_source_raises(self, provisional, store):
        responses.add(responses.GET, REMOTE_URL, status=404)

        with pytest.raises(requests.HTTPError):
            S3Uploader(provisional, store).put_remote_file(REMOTE_URL)

    @responses.activate
    def test_generic_content_type_falls_back_to_name(self, provisional, store, s3_client):
        url = 'https://cdn.test/files/track.mp3'
        responses.add(responses.GET, url, body=b'mp3 data', content_type='application/octet-stream', status=200)
        s3_client.upload_fileobj.side_effect = drain
        s3_client.head_object.return_value = {'ETag': f'"{md5_of(b"mp3 data")}"'}

        uploader = S3Uploader(provisional, store)
        assert uploader.put_remote_file(url) is True
        assert uploader.media_type == 'audio'


class TestHashingReader:
    def test_single_part_etag(self):
        reader = HashingReader(io.BytesIO(b'hello world'))
        while reader.read(3):
            pass
        assert reader.hexdigest == md5_of(b'hello world')
        assert reader.bytes_read == 11
        assert reader.matches(f'"{md5_of(b"hello world").lower()}"')

    def test_multipart_etag(self):
        data = b'abcdefghij'
        reader = HashingReader(io.BytesIO(data), part_size=4)
        reader.read()

        parts = [hashlib.md5(data[i:i + 4]).digest() for i in range(0, len(data), 4)]
        expected = hashlib.md5(b''.join(parts)).hexdigest()
        assert reader.multipart_etag() == f'{expected.upper()}-3'
        assert reader.matches(f'"{expected}-3"')
        assert not reader.matches(f'"{expected}-2"')
