"""
Telegram Bot API client.

Only the three calls the webhook needs: resolve a file, download it and send
a plain-text reply.
"""

import logging
from typing import Dict, Optional, Tuple

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class TelegramError(Exception):
    """Raised when a Bot API call fails"""


class TelegramClient:

    def __init__(self, token: Optional[str] = None, api_base: Optional[str] = None,
                 timeout: Optional[int] = None, session=None):
        config = current_app.config
        self.token = token or config.get('TELEGRAM_BOT_TOKEN')
        self.api_base = (api_base or config.get('TELEGRAM_API_BASE') or 'https://api.telegram.org').rstrip('/')
        self.timeout = timeout or config.get('HTTP_TIMEOUT', 30)
        self.session = session or requests.Session()

    def _token(self) -> str:
        if not self.token:
            raise TelegramError('Missing TELEGRAM_BOT_TOKEN')
        return self.token

    def get_file(self, file_id: str) -> Dict:
        """Resolve a file_id into its file_path"""
        url = f'{self.api_base}/bot{self._token()}/getFile'
        try:
            response = self.session.get(url, params={'file_id': file_id}, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TelegramError(f'Failed to fetch Telegram file info: {e}') from e

        result = data.get('result') or {}
        if not response.ok or not data.get('ok') or not result.get('file_path'):
            raise TelegramError(data.get('description') or 'Failed to fetch Telegram file info')
        return result

    def download_file(self, file_path: str) -> Tuple[bytes, str]:
        """Download a file; returns (content, content_type)"""
        url = f'{self.api_base}/file/bot{self._token()}/{file_path}'
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TelegramError(f'Failed to download Telegram file: {e}') from e
        if not response.ok:
            raise TelegramError('Failed to download Telegram file')
        content_type = response.headers.get('content-type') or 'image/jpeg'
        return response.content, content_type

    def send_message(self, chat_id: int, text: str) -> None:
        url = f'{self.api_base}/bot{self._token()}/sendMessage'
        try:
            response = self.session.post(url, json={
                'chat_id': chat_id,
                'text': text,
                'disable_web_page_preview': True,
            }, timeout=self.timeout)
        except requests.RequestException as e:
            raise TelegramError(f'Failed to send Telegram message: {e}') from e
        if not response.ok:
            raise TelegramError('Failed to send Telegram message')
