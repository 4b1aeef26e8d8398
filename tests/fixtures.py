"""
Record payloads shaped like the upload API responses.
"""

import hashlib

AI_OVERLORDS_MD5 = '7ED971313D1AEA1B6E2BF8AF24BED64A'

TEST_ENV = {
    'EIVU_ACCESS_KEY_ID': 'test-access-key',
    'EIVU_SECRET_ACCESS_KEY': 'test-secret-key',
    'EIVU_BUCKET_NAME': 'eivu-test',
    'EIVU_BUCKET_UUID': '889c685a-de30-4ead-9a96-b3784233e1e8',
    'EIVU_ENDPOINT': 's3.wasabisys.com',
    'EIVU_REGION': 'us-east-1',
    'EIVU_UPLOAD_SERVER_HOST': 'http://upload.test',
    'EIVU_USER_TOKEN': 'test-token',
}

API_BASE = 'http://upload.test/api/upload/v1/buckets/889c685a-de30-4ead-9a96-b3784233e1e8/'


def reservation_payload(md5=AI_OVERLORDS_MD5, **overrides):
    """Record body as the API returns it right after a reservation."""
    payload = {
        'artists': [],
        'asset': None,
        'bucketName': 'eivu-test',
        'bucketUuid': '889c685a-de30-4ead-9a96-b3784233e1e8',
        'contentType': None,
        'createdAt': '2025-09-29T23:32:35.951Z',
        'dateAquiredAt': None,
        'deletable': False,
        'delicate': False,
        'description': None,
        'duration': 0,
        'filesize': 0,
        'folderUuid': None,
        'lastViewedAt': None,
        'md5': md5,
        'metadata': [],
        'name': f'{md5} (reserved)',
        'nsfw': False,
        'numPlays': 0,
        'peepy': False,
        'rating': None,
        'secured': False,
        'shared': True,
        'state': 'reserved',
        'updatedAt': '2025-09-29T23:32:35.951Z',
        'userUuid': '0f703c04-b448-455c-8a26-4edc22bf76dd',
        'uuid': '',
        'year': None,
    }
    payload.update(overrides)
    return payload


def transfer_payload(md5=AI_OVERLORDS_MD5, **overrides):
    payload = reservation_payload(
        md5, asset='ai_overlords.jpg', contentType='image/jpeg', filesize=66034, state='transfered'
    )
    payload.update(overrides)
    return payload


def complete_payload(md5=AI_OVERLORDS_MD5, **overrides):
    payload = transfer_payload(md5, state='completed')
    payload.update(overrides)
    return payload


def md5_of(data: bytes) -> str:
    return hashlib.md5(data).hexdigest().upper()
