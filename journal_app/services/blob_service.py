"""
Screenshot Blob Storage Service

Proxies screenshot uploads to an S3-compatible bucket (Cloudflare R2, MinIO,
AWS S3) and returns the public URL of the stored object.
"""

import logging
import re
from datetime import datetime
from typing import Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r'[^\w.\-]+', re.ASCII)


class BlobStorageError(Exception):
    """Raised when an object cannot be stored"""


def safe_file_name(name: Optional[str]) -> str:
    return _UNSAFE_NAME_RE.sub('_', name or 'screenshot')


def build_object_key(original_name: Optional[str], now: Optional[datetime] = None) -> str:
    """Date-partitioned key: YYYY/MM/DD/<epoch-ms>-<safe name>"""
    now = now or datetime.now()
    timestamp = int(now.timestamp() * 1000)
    return f"{now:%Y/%m/%d}/{timestamp}-{safe_file_name(original_name)}"


class BlobService:
    """Service for screenshot uploads"""

    def __init__(self, client=None):
        config = current_app.config
        self.bucket = config.get('BLOB_BUCKET')
        self.endpoint_url = config.get('BLOB_ENDPOINT_URL')
        self.public_base_url = (config.get('BLOB_PUBLIC_BASE_URL') or '').rstrip('/')
        self._client = client
        self._access_key_id = config.get('BLOB_ACCESS_KEY_ID')
        self._secret_access_key = config.get('BLOB_SECRET_ACCESS_KEY')

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                config=BotoConfig(signature_version='s3v4'),
                region_name='auto'
            )
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f'{self.public_base_url}/{key}'
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f'https://{self.bucket}.s3.amazonaws.com/{key}'

    def upload_screenshot(self, body: bytes, original_name: Optional[str],
                          content_type: Optional[str] = None) -> Dict:
        """
        Store screenshot bytes publicly.

        Returns:
            Dictionary with 'url', 'pathname' and 'contentType'
        """
        if not self.bucket:
            raise BlobStorageError('Missing BLOB_BUCKET')

        key = build_object_key(original_name)
        content_type = content_type or 'application/octet-stream'
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                ACL='public-read'
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Screenshot upload failed for {key}: {e}")
            raise BlobStorageError(f'Upload failed: {e}') from e

        logger.info(f"Uploaded screenshot {key} ({len(body)} bytes)")
        return {
            'url': self.public_url(key),
            'pathname': key,
            'contentType': content_type,
        }
