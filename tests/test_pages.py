"""Tests for the HTML pages and form handlers."""

import io
import zipfile
from datetime import datetime
from urllib.parse import parse_qs, urlparse

from journal_app.models import Trade, db
from journal_app.services.stats_service import (MAX_BIN_COUNT, RiskSettings, StatsService,
                                                StructureSettings, parse_positive_int)


def _create_payload(**overrides):
    data = {
        'pnl_amount': '-20',
        'symbol': 'XAUUSD',
        'trade_platform': 'Bybit',
        'direction': 'short',
        'result': 'loss',
        'trade_mode': 'live',
        'entry_time': '2025-03-01 09:30',
        'exit_time': '2025-03-01 09:50',
        'entry_point': '2900',
        'closing_point': '2910',
        'sl_point': '2910',
    }
    data.update(overrides)
    return data


def _error_param(response):
    return parse_qs(urlparse(response.headers['Location']).query).get('error', [None])[0]


def test_index_lists_trades(client, make_trade):
    trade = make_trade(trade_platform='Pepperstone',
                       screenshot_url='https://cdn.example.com/1.png,https://cdn.example.com/2.png')
    make_trade(trade_platform='Bybit')

    response = client.get('/')
    assert response.status_code == 200
    assert b'Showing 2 trades.' in response.data
    assert trade.id.encode() in response.data
    assert b'href="https://cdn.example.com/1.png"' in response.data
    assert b'https://www.tradingview.com/chart/?symbol=XAUUSD' in response.data

    filtered = client.get('/?tradePlatform=pepper')
    assert b'Showing 1 trades.' in filtered.data


def test_index_shows_error_caption(client):
    response = client.get('/?error=Entry+time+is+required')
    assert b'Error: Entry time is required' in response.data


def test_create_trade(client):
    response = client.post('/trades', data=_create_payload())

    assert response.status_code == 302
    assert _error_param(response) is None
    trade = Trade.query.one()
    assert trade.actual_r_multiple == -1.0
    assert trade.entry_time == datetime(2025, 3, 1, 9, 30)


def test_create_trade_invalid_redirects_with_error(client):
    response = client.post('/trades', data=_create_payload(entry_point=''))

    assert response.status_code == 302
    assert _error_param(response).startswith('Entry point')
    assert Trade.query.count() == 0


def test_edit_page_and_update(client, make_trade):
    trade = make_trade()

    page = client.get(f'/trades/{trade.id}/edit')
    assert page.status_code == 200
    assert b'2025-03-01 09:30:00' in page.data

    response = client.post(f'/trades/{trade.id}/edit', data=_create_payload(pnl_amount='-35.5'))
    assert response.status_code == 302
    assert db.session.get(Trade, trade.id).pnl_amount == -35.5


def test_edit_missing_trade_is_404(client):
    assert client.get('/trades/999/edit').status_code == 404


def test_delete_trade(client, make_trade):
    trade = make_trade()
    response = client.post(f'/trades/{trade.id}/delete')

    assert response.status_code == 302
    assert Trade.query.count() == 0

    missing = client.post('/trades/999/delete')
    assert _error_param(missing) == 'Trade not found'


def test_review_json(client, make_trade):
    trade = make_trade()
    response = client.post(f'/trades/{trade.id}/review', json={'entry_reason': ' Late entry '})

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'entryReason': 'Late entry'}
    assert db.session.get(Trade, trade.id).entry_reason == 'Late entry'

    missing = client.post('/trades/999/review', json={'entry_reason': 'x'})
    assert missing.status_code == 404


def test_review_form_post_redirects_to_edit(client, make_trade):
    trade = make_trade()
    response = client.post(f'/trades/{trade.id}/review', data={'entry_reason': 'Fine'})

    assert response.status_code == 302
    assert response.headers['Location'].endswith(f'/trades/{trade.id}/edit')


def test_attach_screenshots_json(client, make_trade):
    trade = make_trade(screenshot_url='https://a/1.png')
    response = client.post(f'/trades/{trade.id}/screenshots',
                           json={'screenshot_url': 'https://a/2.png\nhttps://a/1.png'})

    assert response.get_json() == {'success': True, 'screenshotUrl': 'https://a/1.png,https://a/2.png'}

    empty = client.post(f'/trades/{trade.id}/screenshots', json={'screenshot_url': ' , '})
    assert empty.status_code == 400


def test_export_single_trade(client, make_trade):
    trade = make_trade()
    response = client.get(f'/trades/{trade.id}/export')

    assert response.status_code == 200
    assert response.mimetype == 'text/markdown'
    assert f'20250301-XAUUSD-trade-{trade.id}.md' in response.headers['Content-Disposition']
    assert response.data.startswith(b'# Trade Record')


def test_export_all_zip(client, make_trade):
    first = make_trade(result='win')
    make_trade(result='loss')

    response = client.get('/export?result=win')
    assert response.mimetype == 'application/zip'
    names = zipfile.ZipFile(io.BytesIO(response.data)).namelist()
    assert names == [f'20250301-XAUUSD-trade-{first.id}.md']


def test_stream_page(client):
    response = client.get('/stream')
    assert response.status_code == 200
    assert b'/api/trades/stream' in response.data


def test_manifest(client):
    response = client.get('/manifest.webmanifest')
    assert response.mimetype == 'application/manifest+json'
    manifest = response.get_json(force=True)
    assert manifest['name'] == 'Trade Records'
    assert manifest['display'] == 'standalone'
    assert manifest['orientation'] == 'landscape'
    assert manifest['theme_color'] == '#111827'


def test_stats_pages_render(client, make_trade):
    assert client.get('/stats').status_code == 200
    assert client.get('/stats/structure').status_code == 200

    make_trade(pnl_amount=-30.0)
    make_trade(pnl_amount=50.0)
    assert client.get('/stats?threshold=2').status_code == 200
    assert client.get('/stats/structure?window=&bin_count=20').status_code == 200


def test_risk_stats_payload(app, make_trade):
    for pnl in (-1.0, -2.0, 3.0):
        make_trade(pnl_amount=pnl)

    stats = StatsService().get_risk_stats(RiskSettings(threshold=1.5))

    assert stats['trade_count'] == 3
    assert [point['value'] for point in stats['rolling_max_loss']] == [1.0, 2.0, 2.0]
    assert stats['threshold_breaches'] == 2
    assert stats['charts']['rolling_max_loss']['layout']['shapes'][0]['y0'] == 1.5


def test_structure_settings_from_query(app):
    settings = StructureSettings.from_args({'window': '', 'range_min': 'x', 'bin_count': '20'})
    assert settings.window is None
    assert settings.range_min == -4.0
    assert settings.bin_count == 20

    assert StructureSettings.from_args({}).window == 100
    assert parse_positive_int('-3') is None
    assert parse_positive_int('25') == 25
    assert parse_positive_int('inf') is None
    assert parse_positive_int('1e999') is None


def test_structure_bin_count_is_capped(app):
    assert StructureSettings.from_args({'bin_count': '1e9'}).bin_count == MAX_BIN_COUNT
    assert StructureSettings.from_args({'bin_count': '60'}).bin_count == 60


def test_structure_page_with_non_finite_query(client, make_trade):
    make_trade(pnl_amount=-30.0)
    assert client.get('/stats/structure?window=inf&bin_count=1e9').status_code == 200
    assert client.get('/stats/structure?window=-Infinity&range_min=nan').status_code == 200
