"""
Markdown export of journal entries.

Each trade becomes one Markdown document; the export-all archive bundles
those documents with the downloaded screenshots under images/.
"""

import io
import logging
import math
import re
import zipfile
from datetime import datetime
from typing import Iterable, List, Optional
from urllib.parse import urlparse

import requests

from journal_app.screenshot_urls import split_screenshot_urls
from journal_app.wall_clock import format_ymd, format_ymd_hms

logger = logging.getLogger(__name__)

_UNSAFE_SEGMENT_RE = re.compile(r'[^\w.-]+', re.ASCII)

_CONTENT_TYPE_EXTENSIONS = (
    ('image/jpeg', 'jpg'),
    ('image/png', 'png'),
    ('image/webp', 'webp'),
    ('image/gif', 'gif'),
    ('image/svg', 'svg'),
)


def sanitize_file_segment(value: str) -> str:
    return _UNSAFE_SEGMENT_RE.sub('-', value.strip())


def _number(value) -> str:
    if value is None or isinstance(value, bool):
        return ''
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ''
    if not math.isfinite(number):
        return ''
    return str(int(number)) if number.is_integer() else repr(number)


def _r_value(value) -> str:
    base = _number(value)
    return f'{base}R' if base else ''


def _boolean(value) -> str:
    if value is None:
        return ''
    return 'Yes' if value else 'No'


def _text(value) -> str:
    return value or ''


def _collapse_blank_lines(lines: List[str]) -> List[str]:
    collapsed = []
    for line in lines:
        if not line and collapsed and collapsed[-1] == '':
            continue
        collapsed.append(line)
    return collapsed


def build_trade_markdown(trade, image_paths: Optional[Iterable[str]] = None) -> str:
    """
    Render a trade as Markdown.

    Args:
        trade: Trade model instance
        image_paths: local paths (inside an export archive) that replace the
            remote screenshot URLs when given
    """
    local_paths = [path.strip() for path in (image_paths or []) if path and path.strip()]
    remote_urls = split_screenshot_urls(trade.screenshot_url)

    if local_paths:
        screenshot_lines = [f'![Screenshot {i}]({path})' for i, path in enumerate(local_paths, 1)]
        screenshot_url_lines = []
    else:
        screenshot_lines = [f'![Screenshot {i}]({url})' for i, url in enumerate(remote_urls, 1)]
        screenshot_url_lines = remote_urls

    lines = [
        '# Trade Record',
        '',
        '## Trade Details',
        f'- PnL amount: {_number(trade.pnl_amount)}',
        f'- Symbol: {_text(trade.symbol)}',
        f'- Trade platform: {_text(trade.trade_platform)}',
        f'- Direction: {_text(trade.direction)}',
        f'- Result: {_text(trade.result)}',
        f'- Trade mode: {_text(trade.trade_mode)}',
        f'- Entry time: {format_ymd_hms(trade.entry_time)}',
        f'- Exit time: {format_ymd_hms(trade.exit_time)}',
        '',
        '## Context',
        f'- Timeframe: {_text(trade.timeframe)}',
        f'- Trend assessment: {_text(trade.trend_assessment)}',
        f'- Market phase: {_text(trade.market_phase)}',
        '',
        '## Setup',
        f'- Setup type: {_text(trade.setup_type)}',
        f'- Entry type: {_text(trade.entry_type)}',
        f'- Confidence (1-5): {_number(trade.confidence_level)}',
        '',
        '## Risk & Management',
        f'- Entry point: {_number(trade.entry_point)}',
        f'- Closing point: {_number(trade.closing_point)}',
        f'- SL point: {_number(trade.sl_point)}',
        f'- TP point: {_number(trade.tp_point)}',
        f'- Actual R multiple: {_r_value(trade.actual_r_multiple)}',
        f'- Planned R multiple: {_r_value(trade.planned_r_multiple)}',
        f'- Early exit: {_boolean(trade.early_exit)}',
        '',
        '## Post-trade Review',
        _text(trade.entry_reason),
        '',
        '## Screenshot',
        *screenshot_lines,
        *screenshot_url_lines,
    ]
    return '\n'.join(_collapse_blank_lines(lines))


def build_export_file_name(trade) -> str:
    date = format_ymd(trade.entry_time) or 'trade'
    symbol = sanitize_file_segment(trade.symbol) if trade.symbol else 'symbol'
    return f'{date}-{symbol}-trade-{trade.id}.md'


def resolve_image_extension(url: str, content_type: Optional[str]) -> str:
    """File extension from the URL path, else from the content type, else ''"""
    last_segment = urlparse(url).path.rsplit('/', 1)[-1]
    if '.' in last_segment:
        extension = last_segment.rsplit('.', 1)[-1]
        if extension and len(extension) <= 5:
            return extension.lower()

    if not content_type:
        return ''
    for prefix, extension in _CONTENT_TYPE_EXTENSIONS:
        if prefix in content_type:
            return extension
    return ''


def export_archive_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f'trades-{now:%Y%m%d-%H%M%S}.zip'


class TradeExporter:
    """Builds the export-all zip archive"""

    def __init__(self, session=None, timeout: int = 30):
        self.session = session or requests.Session()
        self.timeout = timeout

    def download_image(self, url: str, trade, index: int):
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        extension = resolve_image_extension(url, response.headers.get('content-type')) or 'bin'
        safe_symbol = sanitize_file_segment(trade.symbol) if trade.symbol else 'trade'
        suffix = f'-{index}' if index > 1 else ''
        return f'trade-{trade.id}-{safe_symbol}{suffix}.{extension}', response.content

    def build_zip(self, trades) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
            for trade in trades:
                image_paths = []
                urls = split_screenshot_urls(trade.screenshot_url)
                for index, url in enumerate(urls, 1):
                    try:
                        filename, content = self.download_image(url, trade, index)
                    except requests.RequestException as e:
                        logger.warning(f"Screenshot download failed for trade {trade.id}: {e}")
                        continue
                    archive.writestr(f'images/{filename}', content)
                    image_paths.append(f'images/{filename}')

                # Partial downloads keep the remote URLs so nothing is lost
                if len(image_paths) != len(urls):
                    image_paths = []
                archive.writestr(build_export_file_name(trade),
                                 build_trade_markdown(trade, image_paths=image_paths))
        return buffer.getvalue()
