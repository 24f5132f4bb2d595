"""Tests for the risk and structure statistics."""

from datetime import datetime, timedelta

import pytest

from journal_app import risk_stats
from journal_app.risk_stats import RiskSeriesPoint, TradeRiskInput


def _series(values):
    start = datetime(2025, 1, 1)
    return [
        RiskSeriesPoint(id=str(i), date=start + timedelta(days=i), label=str(i + 1), r=float(v))
        for i, v in enumerate(values)
    ]


def _values(points):
    return [point['value'] for point in points]


def _trade(trade_id, entry_time, **fields):
    values = {'direction': 'long', 'entry_point': 100.0, 'closing_point': 110.0}
    values.update(fields)
    return TradeRiskInput(id=trade_id, entry_time=entry_time, **values)


class TestResolveRMultiple:

    def test_pnl_over_risk_budget_wins(self):
        trade = _trade('1', '2025-01-01', pnl_amount=40.0, actual_r_multiple=9.0)
        assert risk_stats.resolve_r_multiple(trade, 20) == 2.0

    def test_stored_actual_r_when_no_pnl(self):
        trade = _trade('1', '2025-01-01', actual_r_multiple=1.5)
        assert risk_stats.resolve_r_multiple(trade, 20) == 1.5

    def test_price_distance_over_stop(self):
        long_trade = _trade('1', '2025-01-01', sl_point=95.0)
        short_trade = _trade('2', '2025-01-01', direction='short', closing_point=90.0, sl_point=105.0)
        assert risk_stats.resolve_r_multiple(long_trade, None) == 2.0
        assert risk_stats.resolve_r_multiple(short_trade, None) == 2.0

    def test_falls_back_to_risk_budget_without_stop(self):
        trade = _trade('1', '2025-01-01')
        assert risk_stats.resolve_r_multiple(trade, 5) == 2.0

    def test_unresolvable(self):
        trade = _trade('1', '2025-01-01', entry_point=None)
        assert risk_stats.resolve_r_multiple(trade, 20) is None


def test_normalize_risk_series_sorts_and_labels():
    trades = [
        _trade('5', datetime(2025, 1, 3), pnl_amount=20.0),
        _trade('3', datetime(2025, 1, 1), pnl_amount=-20.0),
        _trade('4', '2025-01-02 09:00:00', pnl_amount=40.0),
    ]

    series = risk_stats.normalize_risk_series(trades, 20)
    assert [point.id for point in series] == ['3', '4', '5']
    assert [point.r for point in series] == [-1.0, 2.0, 1.0]
    assert [point.label for point in series] == ['1', '2', '3']

    dated = risk_stats.normalize_risk_series(trades, 20, label_mode='date', order='desc')
    assert [point.label for point in dated] == ['2025-01-03', '2025-01-02', '2025-01-01']


def test_normalize_loss_pnl_series_skips_missing_pnl():
    trades = [_trade('1', '2025-01-01', pnl_amount=-12.0), _trade('2', '2025-01-02')]
    series = risk_stats.normalize_loss_pnl_series(trades)
    assert [point.r for point in series] == [-12.0]


@pytest.mark.parametrize('index,window,expected', [
    (5, 3, 3),
    (1, 3, 0),
    (5, None, 0),
    (5, 0, 0),
])
def test_get_window_start(index, window, expected):
    assert risk_stats.get_window_start(index, window) == expected


def test_rolling_max_loss():
    series = _series([-10, 5, -30, 20])
    assert _values(risk_stats.calculate_rolling_max_loss(series, 2, 'absolute')) == [10, 10, 30, 30]
    assert _values(risk_stats.calculate_rolling_max_loss(series, 2)) == [-10, -10, -30, -30]


def test_rolling_max_loss_without_losses_is_none():
    series = _series([5, -10, 5, 5])
    assert _values(risk_stats.calculate_rolling_max_loss(series, 2, 'absolute')) == [None, 10, 10, None]
    assert risk_stats.calculate_rolling_max_loss([], 2) == []


def test_bottom_loss_average():
    ten_losses = _series([-v for v in range(1, 11)])
    assert _values(risk_stats.calculate_bottom_loss_average(ten_losses, None, 0.1, 'absolute'))[-1] == 10

    eleven_losses = _series([-v for v in range(1, 12)])
    assert _values(risk_stats.calculate_bottom_loss_average(eleven_losses, None, 0.1))[-1] == -10.5

    wins_only = _series([1, 2])
    assert _values(risk_stats.calculate_bottom_loss_average(wins_only, 30, 0.1)) == [None, None]


def test_absolute_loss_histogram():
    series = _series([-0.5, -1.5, -9.5, -25, 3])
    buckets = risk_stats.calculate_absolute_loss_histogram(series, 100, 10, 10)

    assert len(buckets) == 10
    assert buckets[0].to_dict() == {'bucket': '0-1', 'count': 1}
    assert buckets[1].count == 1
    assert buckets[-1].bucket == '>= 9'
    assert buckets[-1].count == 2
    assert sum(bucket.count for bucket in buckets) == 4


def test_absolute_loss_histogram_uses_last_window_only():
    series = _series([-5, -5, 1, -0.5])
    buckets = risk_stats.calculate_absolute_loss_histogram(series, 2, 10, 10)
    assert [bucket.count for bucket in buckets if bucket.count] == [1]
    assert risk_stats.calculate_absolute_loss_histogram(_series([1, 2]), 10, 10, 10) == []


def test_loss_histogram_with_r_edges():
    series = _series([-0.5, -1.5, -3, 2])
    buckets = risk_stats.calculate_loss_histogram(series, None, [-2, -1, 'x', 1])

    assert [bucket.to_dict() for bucket in buckets] == [
        {'bucket': '-1R to 0R', 'count': 1},
        {'bucket': '-2R to -1R', 'count': 1},
        {'bucket': '<= -2R', 'count': 1},
    ]
    assert risk_stats.calculate_loss_histogram(series, None, [])[0].to_dict() == {
        'bucket': 'All losses', 'count': 3}


def test_fractional_edges_keep_two_decimals_in_labels():
    buckets = risk_stats.calculate_loss_histogram(_series([-1, -2]), None, [-1.5])
    assert [bucket.to_dict() for bucket in buckets] == [
        {'bucket': '-1.50R to 0R', 'count': 1},
        {'bucket': '<= -1.50R', 'count': 1},
    ]

    rows = risk_stats.calculate_distribution_comparison(_series([0.2]), None, -1, 1, 4)
    assert [row['bin'] for row in rows] == ['-1', '-0.50', '0', '0.50']


def test_rolling_average_r():
    series = _series([1, -1, 3])
    assert _values(risk_stats.calculate_rolling_average_r(series, 2)) == [1, 0, 1]
    assert _values(risk_stats.calculate_rolling_average_r(series, None)) == [1, 0, 1]


def test_rolling_win_loss_ratio():
    series = _series([2, -1, 4, -2])
    assert _values(risk_stats.calculate_rolling_win_loss_ratio(series, None)) == [None, 2, 3, 2]


def test_distribution_comparison_density():
    series = _series([-1, 1, 1, 3])
    rows = risk_stats.calculate_distribution_comparison(series, 2, -2, 2, 4, 'density')

    assert [row['bin'] for row in rows] == ['-2', '-1', '0', '1']
    assert [row['base'] for row in rows] == [0, 0.25, 0, 0.75]
    assert [row['recent'] for row in rows] == [0, 0, 0, 1]


def test_distribution_comparison_counts_and_invalid_settings():
    series = _series([-1, 1, 1, 3])
    rows = risk_stats.calculate_distribution_comparison(series, 2, -2, 2, 4, 'count')
    assert [row['base'] for row in rows] == [0, 1, 0, 3]

    assert risk_stats.calculate_distribution_comparison(series, 2, 2, -2, 4) == []
    assert risk_stats.calculate_distribution_comparison(series, 2, -2, 2, 0) == []


@pytest.mark.parametrize('value,expected', [
    (2.0, '2'), (-1.5, '-1.50'), (0.25, '0.25'), (2.004, '2'), (-0.1, '-0.10'),
])
def test_format_risk_value(value, expected):
    assert risk_stats.format_risk_value(value) == expected
