"""TradingView chart deep links for journal entries."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

TRADINGVIEW_CHART_BASE_URL = 'https://www.tradingview.com/chart/'

# Stored times are UTC+8 wall-clock values
WALL_CLOCK_OFFSET = timedelta(hours=8)

_INTERVALS = {
    '5m': '5',
    '15m': '15',
    '1h': '60',
    '4h': '240',
    '1d': 'D',
}


def timeframe_to_interval(timeframe: Optional[str]) -> Optional[str]:
    if not timeframe:
        return None
    normalized = timeframe.strip()
    if not normalized:
        return None

    if normalized.upper() in ('D', 'W', 'M'):
        return normalized.upper()

    mapped = _INTERVALS.get(normalized.lower())
    if mapped:
        return mapped

    if normalized.isdigit():
        return normalized
    if re.match(r'^\d+[HDWM]$', normalized, re.IGNORECASE):
        return normalized.upper()
    return None


def build_tradingview_url(symbol: str, timeframe: Optional[str] = None,
                          at: Optional[datetime] = None) -> str:
    params = {'symbol': symbol.strip()}

    interval = timeframe_to_interval(timeframe)
    if interval:
        params['interval'] = interval

    if isinstance(at, datetime):
        utc = at.replace(tzinfo=timezone.utc) - WALL_CLOCK_OFFSET
        unix_seconds = str(int(utc.timestamp()))
        params['time'] = unix_seconds
        params['timestamp'] = unix_seconds

    return f'{TRADINGVIEW_CHART_BASE_URL}?{urlencode(params)}'
