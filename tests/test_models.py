"""
Tests for record models and configuration.
"""

import pytest

from shared.config import ConfigurationError, get_config, validate_env
from shared.models import CloudFileRecord, CloudFileState, infer_state_history
from tests.fixtures import AI_OVERLORDS_MD5, complete_payload, reservation_payload


class TestStateHistory:
    def test_reserved(self):
        assert infer_state_history(CloudFileState.RESERVED) == [CloudFileState.RESERVED]

    def test_transferred_wire_spelling(self):
        assert infer_state_history('transfered') == [CloudFileState.RESERVED, CloudFileState.TRANSFERRED]

    def test_completed(self):
        assert infer_state_history('completed') == list(CloudFileState)

    @pytest.mark.parametrize('state', [None, 'deleted', 'transferred'])
    def test_unknown_is_empty(self, state):
        assert infer_state_history(state) == []

    def test_follows_state_changes(self):
        record = CloudFileRecord(md5=AI_OVERLORDS_MD5, state=CloudFileState.COMPLETED)
        record.state = CloudFileState.RESERVED
        assert record.state_history == [CloudFileState.RESERVED]


class TestCloudFileRecord:
    def test_from_camel_case_payload(self):
        record = CloudFileRecord.from_dict(complete_payload())
        assert record.md5 == AI_OVERLORDS_MD5
        assert record.state is CloudFileState.COMPLETED
        assert record.content_type == 'image/jpeg'
        assert record.bucket_name == 'eivu-test'
        assert record.num_plays == 0
        assert record.extra == {'artists': []}

    def test_ignores_wire_state_history(self):
        payload = reservation_payload(stateHistory=['reserved', 'transfered', 'completed'])
        record = CloudFileRecord.from_dict(payload)
        assert record.state_history == [CloudFileState.RESERVED]
        assert 'stateHistory' not in record.extra

    def test_uppercases_md5(self):
        assert CloudFileRecord.from_dict({'md5': 'abc123', 'state': 'reserved'}).md5 == 'ABC123'

    def test_unknown_state(self):
        record = CloudFileRecord.from_dict({'md5': AI_OVERLORDS_MD5, 'state': 'archived'})
        assert record.state is None
        assert record.state_history == []

    def test_to_dict(self):
        data = CloudFileRecord.from_dict(complete_payload()).to_dict()
        assert data['state'] == 'completed'
        assert data['state_history'] == ['reserved', 'transfered', 'completed']
        assert data['artists'] == []


class TestConfig:
    def test_reads_environment(self, env):
        config = validate_env()
        assert config.bucket_name == 'eivu-test'
        assert config.endpoint_url == 'https://s3.wasabisys.com'
        assert config.public_host == 'eivu-test.s3.wasabisys.com'
        assert config.api_base_url == \
            'http://upload.test/api/upload/v1/buckets/889c685a-de30-4ead-9a96-b3784233e1e8/'

    def test_reports_every_missing_variable(self, env, monkeypatch):
        monkeypatch.delenv('EIVU_BUCKET_NAME')
        monkeypatch.setenv('EIVU_USER_TOKEN', '  ')
        with pytest.raises(ConfigurationError) as excinfo:
            validate_env()
        message = str(excinfo.value)
        assert 'EIVU_BUCKET_NAME, EIVU_USER_TOKEN' in message
        assert 'EIVU_REGION' not in message

    def test_get_config_is_cached(self, env, monkeypatch):
        first = get_config()
        monkeypatch.setenv('EIVU_BUCKET_NAME', 'other')
        assert get_config() is first
