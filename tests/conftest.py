"""Shared fixtures: a testing app with an in-memory database."""

from datetime import datetime

import pytest

from journal_app import create_app
from journal_app.models import db, Trade
from journal_app.snowflake import generate_snowflake_id


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_trade(app):
    """Insert a trade; keyword arguments override the defaults"""
    def _make_trade(**overrides):
        values = {
            'id': generate_snowflake_id(),
            'symbol': 'XAUUSD',
            'trade_platform': 'Bybit',
            'direction': 'long',
            'result': 'win',
            'trade_mode': 'live',
            'entry_time': datetime(2025, 3, 1, 9, 30),
            'exit_time': datetime(2025, 3, 1, 10, 15),
            'pnl_amount': 40.0,
            'entry_point': 2900.0,
            'closing_point': 2920.0,
            'sl_point': 2890.0,
            'tp_point': 2930.0,
            'timeframe': '5m',
        }
        values.update(overrides)
        trade = Trade(**values)
        db.session.add(trade)
        db.session.commit()
        return trade
    return _make_trade
