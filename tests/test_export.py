"""Tests for Markdown export and TradingView links."""

import io
import zipfile
from datetime import datetime

import pytest
import requests

from journal_app.export import (TradeExporter, build_export_file_name, build_trade_markdown,
                                export_archive_name, resolve_image_extension,
                                sanitize_file_segment)
from journal_app.models import Trade
from journal_app.tradingview import build_tradingview_url, timeframe_to_interval


def _trade(**overrides):
    values = {
        'id': '000012345678001',
        'symbol': 'XAUUSD',
        'trade_platform': 'Bybit',
        'direction': 'long',
        'result': 'win',
        'trade_mode': 'live',
        'entry_time': datetime(2025, 3, 1, 9, 30),
        'exit_time': datetime(2025, 3, 1, 10, 15),
        'pnl_amount': 150.0,
        'entry_point': 2900.5,
        'closing_point': 2915.0,
        'sl_point': 2890.0,
        'tp_point': None,
        'actual_r_multiple': 1.38,
        'planned_r_multiple': None,
        'early_exit': None,
        'confidence_level': 4,
        'timeframe': '5m',
        'screenshot_url': 'https://cdn.example.com/a/1.png,https://cdn.example.com/a/2',
    }
    values.update(overrides)
    return Trade(**values)


class FakeResponse:
    def __init__(self, content, content_type=None):
        self.content = content
        self.headers = {'content-type': content_type} if content_type else {}

    def raise_for_status(self):
        pass


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def test_markdown_sections_and_values():
    markdown = build_trade_markdown(_trade())

    assert markdown.startswith('# Trade Record\n\n## Trade Details\n- PnL amount: 150\n')
    assert '- Entry time: 2025-03-01 09:30:00' in markdown
    assert '- Entry point: 2900.5' in markdown
    assert '- TP point: \n' in markdown
    assert '- Actual R multiple: 1.38R' in markdown
    assert '- Planned R multiple: \n' in markdown
    assert '- Early exit: \n' in markdown
    assert '- Confidence (1-5): 4' in markdown
    assert '![Screenshot 1](https://cdn.example.com/a/1.png)' in markdown
    assert markdown.endswith('https://cdn.example.com/a/1.png\nhttps://cdn.example.com/a/2')
    assert '\n\n\n' not in markdown


def test_markdown_with_local_images():
    markdown = build_trade_markdown(_trade(early_exit=True, entry_reason='Good H2'),
                                    image_paths=['images/a.png', ' '])

    assert '- Early exit: Yes' in markdown
    assert '## Post-trade Review\nGood H2' in markdown
    assert markdown.endswith('## Screenshot\n![Screenshot 1](images/a.png)')


def test_export_file_names():
    assert build_export_file_name(_trade()) == '20250301-XAUUSD-trade-000012345678001.md'
    assert build_export_file_name(_trade(symbol='XAU/USD ')) == '20250301-XAU-USD-trade-000012345678001.md'
    assert sanitize_file_segment(' a b ') == 'a-b'
    assert sanitize_file_segment('黄金 XAU') == '-XAU'
    assert export_archive_name(datetime(2025, 3, 1, 7, 8, 9)) == 'trades-20250301-070809.zip'


@pytest.mark.parametrize('url,content_type,expected', [
    ('https://x/a/b.PNG', None, 'png'),
    ('https://x/a/b.png?sig=1', None, 'png'),
    ('https://x/a/b', 'image/jpeg; charset=binary', 'jpg'),
    ('https://x/a/b', 'image/webp', 'webp'),
    ('https://x/a/b.toolongext', 'image/gif', 'gif'),
    ('https://x/a/b', None, ''),
    ('https://x/a/b', 'application/pdf', ''),
])
def test_resolve_image_extension(url, content_type, expected):
    assert resolve_image_extension(url, content_type) == expected


def test_zip_with_downloaded_images():
    trade = _trade()
    session = FakeSession({
        'https://cdn.example.com/a/1.png': FakeResponse(b'one', 'image/png'),
        'https://cdn.example.com/a/2': FakeResponse(b'two', 'image/jpeg'),
    })

    archive = zipfile.ZipFile(io.BytesIO(TradeExporter(session=session).build_zip([trade])))
    names = set(archive.namelist())

    assert 'images/trade-000012345678001-XAUUSD.png' in names
    assert 'images/trade-000012345678001-XAUUSD-2.jpg' in names
    markdown = archive.read('20250301-XAUUSD-trade-000012345678001.md').decode()
    assert '![Screenshot 2](images/trade-000012345678001-XAUUSD-2.jpg)' in markdown
    assert 'https://cdn.example.com' not in markdown


def test_zip_falls_back_to_remote_urls_on_failed_download():
    trade = _trade()
    session = FakeSession({
        'https://cdn.example.com/a/1.png': FakeResponse(b'one', 'image/png'),
        'https://cdn.example.com/a/2': requests.ConnectionError('offline'),
    })

    archive = zipfile.ZipFile(io.BytesIO(TradeExporter(session=session).build_zip([trade])))
    markdown = archive.read('20250301-XAUUSD-trade-000012345678001.md').decode()

    assert '![Screenshot 2](https://cdn.example.com/a/2)' in markdown


@pytest.mark.parametrize('timeframe,expected', [
    ('5m', '5'), ('15m', '15'), ('1h', '60'), ('4h', '240'), ('1D', 'D'), ('d', 'D'),
    ('W', 'W'), ('30', '30'), ('2h', '2H'), ('', None), (None, None), ('weekly', None),
])
def test_timeframe_to_interval(timeframe, expected):
    assert timeframe_to_interval(timeframe) == expected


def test_tradingview_url_treats_times_as_utc8():
    url = build_tradingview_url(' XAUUSD ', '5m', datetime(2025, 3, 1, 8, 0, 0))
    assert url == ('https://www.tradingview.com/chart/?symbol=XAUUSD&interval=5'
                   '&time=1740787200&timestamp=1740787200')
    assert build_tradingview_url('XAUUSD') == 'https://www.tradingview.com/chart/?symbol=XAUUSD'
