"""
Trade Image Parse Service

Extracts trade fields from a broker/chart screenshot with a vision-language
model served behind an OpenAI-compatible chat completions endpoint.
"""

import base64
import json
import logging
import re
from typing import Dict, Optional, Union

from flask import current_app
from openai import OpenAI

logger = logging.getLogger(__name__)

ALLOWED_FIELDS = (
    'pnlAmount',
    'symbol',
    'direction',
    'result',
    'tradeMode',
    'entryTime',
    'exitTime',
    'timeframe',
    'trendAssessment',
    'marketPhase',
    'setupType',
    'entryType',
    'confidenceLevel',
    'entryPoint',
    'closingPoint',
    'slPoint',
    'tpPoint',
    'entryReason',
    'earlyExit',
)

FieldValue = Union[str, bool]

_FENCE_RE = re.compile(r'```(?:json)?')


class ImageParseError(Exception):
    """Raised when the model cannot be called or its answer is unusable"""


def extract_json(content: Optional[str]) -> Optional[Dict]:
    """Pull the outermost JSON object out of a model reply (fences allowed)"""
    if not content:
        return None
    cleaned = _FENCE_RE.sub('', content).replace('```', '').strip()
    start = cleaned.find('{')
    end = cleaned.rfind('}')
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        parsed = json.loads(cleaned[start:end + 1])
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def normalize_direction(value: str) -> str:
    normalized = value.strip().lower()
    if normalized in ('buy', 'long'):
        return 'long'
    if normalized in ('sell', 'short'):
        return 'short'
    return ''


def normalize_result(value: str) -> str:
    normalized = value.strip().lower()
    return normalized if normalized in ('win', 'loss') else ''


def normalize_trade_mode(value: str) -> str:
    return 'demo' if value.strip().lower() == 'demo' else 'live'


def normalize_early_exit(value: str) -> FieldValue:
    normalized = value.strip().lower()
    if normalized == 'true':
        return True
    if normalized == 'false':
        return False
    return ''


_STRING_NORMALIZERS = {
    'direction': normalize_direction,
    'result': normalize_result,
    'tradeMode': normalize_trade_mode,
    'earlyExit': normalize_early_exit,
}


def normalize_fields(parsed: Dict) -> Dict[str, FieldValue]:
    """
    Coerce the model output onto ALLOWED_FIELDS.

    Booleans pass through, numbers become strings, strings are trimmed (and
    canonicalized for the enum-like fields); anything else becomes "".
    """
    normalized = {}
    for key in ALLOWED_FIELDS:
        value = parsed.get(key)
        if isinstance(value, bool):
            normalized[key] = value
        elif isinstance(value, (int, float)):
            normalized[key] = _number_to_string(value)
        elif isinstance(value, str):
            normalizer = _STRING_NORMALIZERS.get(key)
            normalized[key] = normalizer(value) if normalizer else value.strip()
        else:
            normalized[key] = ''

    if not normalized['tradeMode']:
        normalized['tradeMode'] = 'live'
    return normalized


def _number_to_string(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_prompt() -> str:
    return '\n'.join([
        'Extract the following fields from the trade screenshot and return pure JSON only '
        '(no explanations or Markdown):',
        '',
        f"Fields: {', '.join(ALLOWED_FIELDS)}",
        '',
        'Requirements:',
        '1) Return all fields.',
        '2) Use empty string "" for unknown fields.',
        '3) earlyExit must be true/false or "".',
        '4) Datetime format: YYYY-MM-DD HH:mm:ss.',
        '5) For numeric fields, return a number or numeric string.',
        '6) direction must be "long" or "short" (lowercase).',
        '7) result must be "win" or "loss" (lowercase).',
    ])


class ImageParseService:
    """Service wrapping the vision-language model call"""

    def __init__(self, api_key=None, base_url=None, model=None, client=None):
        config = current_app.config
        self.api_key = api_key or config.get('VLM_API_KEY')
        self.base_url = base_url or config.get('VLM_BASE_URL')
        self.model = model or config.get('VLM_MODEL', 'qwen3-vl-plus')
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise ImageParseError('Missing DASHSCOPE_API_KEY')
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def parse_trade_image(self, data: bytes, content_type: Optional[str] = None) -> Dict[str, FieldValue]:
        """
        Ask the model for the trade fields visible in an image.

        Args:
            data: raw image bytes
            content_type: MIME type of the image (defaults to image/png)

        Returns:
            Normalized field dictionary keyed by ALLOWED_FIELDS
        """
        encoded = base64.b64encode(data).decode('ascii')
        data_url = f"data:{content_type or 'image/png'};base64,{encoded}"

        logger.info(f"Parsing trade image ({len(data)} bytes) with {self.model}")
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    'role': 'user',
                    'content': [
                        {'type': 'image_url', 'image_url': {'url': data_url}},
                        {'type': 'text', 'text': build_prompt()},
                    ],
                },
            ],
        )

        content = ''
        if completion.choices:
            content = completion.choices[0].message.content or ''
        parsed = extract_json(content)
        if parsed is None:
            logger.warning('Model response did not contain a JSON object')
            raise ImageParseError('Failed to parse model response')

        return normalize_fields(parsed)
