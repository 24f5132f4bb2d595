"""Tests for wall-clock datetimes and the screenshot URL column helpers."""

from datetime import date, datetime

import pytest

from journal_app.screenshot_urls import (first_screenshot_url, join_screenshot_urls,
                                         merge_screenshot_urls, split_screenshot_urls)
from journal_app.wall_clock import format_ymd, format_ymd_hms, parse_wall_clock


@pytest.mark.parametrize('raw,expected', [
    ('2025-03-01 09:30:15', datetime(2025, 3, 1, 9, 30, 15)),
    ('2025-03-01T09:30:15', datetime(2025, 3, 1, 9, 30, 15)),
    ('2025-03-01 09:30', datetime(2025, 3, 1, 9, 30)),
    ('2025-03-01', datetime(2025, 3, 1)),
    ('  2025-03-01 09:30  ', datetime(2025, 3, 1, 9, 30)),
])
def test_parse_wall_clock(raw, expected):
    assert parse_wall_clock(raw) == expected


@pytest.mark.parametrize('raw', ['', None, '2025-02-30 10:00:00', '01/03/2025', '2025-03-01 25:00'])
def test_parse_wall_clock_rejects_invalid(raw):
    assert parse_wall_clock(raw) is None


def test_format_helpers():
    moment = datetime(2025, 3, 1, 9, 5, 7)
    assert format_ymd_hms(moment) == '2025-03-01 09:05:07'
    assert format_ymd(moment) == '20250301'
    assert format_ymd(date(2025, 12, 31)) == '20251231'
    assert format_ymd_hms('2025-03-01 09:05') == '2025-03-01 09:05:00'
    assert format_ymd_hms(None) == ''
    assert format_ymd('not a date') == ''


def test_split_screenshot_urls():
    assert split_screenshot_urls(' https://a/1.png , ,https://a/2.png ') == [
        'https://a/1.png', 'https://a/2.png']
    assert split_screenshot_urls(None) == []
    assert split_screenshot_urls('') == []


def test_join_deduplicates_in_first_seen_order():
    joined = join_screenshot_urls(['https://a/2.png', ' https://a/1.png', None, '', 'https://a/2.png'])
    assert joined == 'https://a/2.png,https://a/1.png'


def test_merge_and_first():
    merged = merge_screenshot_urls('https://a/1.png', ['https://a/1.png', 'https://a/3.png'])
    assert merged == 'https://a/1.png,https://a/3.png'
    assert merge_screenshot_urls(None, []) == ''
    assert first_screenshot_url(merged) == 'https://a/1.png'
    assert first_screenshot_url('') is None
