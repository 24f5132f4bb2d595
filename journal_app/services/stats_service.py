"""
Stats Service

Assembles the two statistics pages:
- risk: left-tail loss control over raw PnL
- structure: R distribution, rolling average R and win/loss ratio against
  the long-term baseline
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from flask import current_app

from journal_app import risk_stats
from journal_app.services.chart_service import ChartService
from journal_app.services.trade_service import TradeService

ROLLING_MAX_WINDOW = 20
BOTTOM_LOSS_WINDOW = 30
BOTTOM_LOSS_PERCENT = 0.1
HISTOGRAM_WINDOW = 100
HISTOGRAM_BINS = 10
HISTOGRAM_MAX = 10
DEFAULT_LOSS_THRESHOLD = 1.5
MAX_BIN_COUNT = 200


def parse_positive_int(value) -> Optional[int]:
    """Positive integer or None (None means an unbounded window)"""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = int(float(text))
    except (ValueError, OverflowError):
        return None
    return parsed if parsed > 0 else None


def parse_float(value, fallback: float) -> float:
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return fallback
    return parsed if math.isfinite(parsed) else fallback


@dataclass
class RiskSettings:
    threshold: float = DEFAULT_LOSS_THRESHOLD

    @classmethod
    def from_args(cls, args):
        return cls(threshold=abs(parse_float(args.get('threshold'), DEFAULT_LOSS_THRESHOLD)))


@dataclass
class StructureSettings:
    window: Optional[int] = 100
    range_min: float = -4.0
    range_max: float = 4.0
    bin_count: int = 40
    risk_points: float = 20.0

    @classmethod
    def from_args(cls, args, default_risk_points: float = 20.0):
        window = args.get('window')
        return cls(
            window=parse_positive_int(window) if window is not None else 100,
            range_min=parse_float(args.get('range_min'), -4.0),
            range_max=parse_float(args.get('range_max'), 4.0),
            bin_count=min(MAX_BIN_COUNT, int(round(parse_float(args.get('bin_count'), 40)))),
            risk_points=parse_float(args.get('risk_points'), default_risk_points),
        )


class StatsService:
    """Service for statistics page data"""

    def __init__(self, trade_service: Optional[TradeService] = None,
                 chart_service: Optional[ChartService] = None):
        self.trade_service = trade_service or TradeService()
        self.chart_service = chart_service or ChartService()

    def get_risk_stats(self, settings: RiskSettings) -> Dict:
        trades = self.trade_service.get_risk_inputs()
        series = risk_stats.normalize_loss_pnl_series(trades, 'index', 'asc')

        rolling_max = risk_stats.calculate_rolling_max_loss(
            series[-ROLLING_MAX_WINDOW:], ROLLING_MAX_WINDOW, 'absolute')
        bottom_avg = risk_stats.calculate_bottom_loss_average(
            series[-BOTTOM_LOSS_WINDOW:], BOTTOM_LOSS_WINDOW, BOTTOM_LOSS_PERCENT, 'absolute')
        histogram = risk_stats.calculate_absolute_loss_histogram(
            series[-HISTOGRAM_WINDOW:], HISTOGRAM_WINDOW, HISTOGRAM_BINS, HISTOGRAM_MAX)

        breaches = sum(1 for point in rolling_max
                       if point['value'] is not None and point['value'] > settings.threshold)

        return {
            'settings': asdict(settings),
            'trade_count': len(series),
            'rolling_max_loss': rolling_max,
            'bottom_loss_average': bottom_avg,
            'loss_histogram': [bucket.to_dict() for bucket in histogram],
            'threshold_breaches': breaches,
            'charts': {
                'rolling_max_loss': self.chart_service.line_chart(
                    rolling_max, f'Rolling Max Loss (last {ROLLING_MAX_WINDOW})',
                    '|Max loss|', '#f87171', y_title='|PnL|', threshold=settings.threshold),
                'bottom_loss_average': self.chart_service.line_chart(
                    bottom_avg, f'Bottom 10% Loss Average (last {BOTTOM_LOSS_WINDOW})',
                    '|Bottom 10% avg|', '#fb923c', y_title='|PnL|', threshold=settings.threshold),
                'loss_histogram': self.chart_service.histogram_chart(
                    histogram, f'Loss Distribution (last {HISTOGRAM_WINDOW})'),
            },
        }

    def get_structure_stats(self, settings: StructureSettings) -> Dict:
        trades = self.trade_service.get_risk_inputs()
        series = risk_stats.normalize_risk_series(trades, settings.risk_points, 'index', 'asc')

        distribution = risk_stats.calculate_distribution_comparison(
            series, settings.window, settings.range_min, settings.range_max,
            settings.bin_count, 'density')
        rolling_average = risk_stats.calculate_rolling_average_r(series, settings.window)
        win_loss_ratio = risk_stats.calculate_rolling_win_loss_ratio(series, settings.window)

        return {
            'settings': asdict(settings),
            'trade_count': len(series),
            'distribution': distribution,
            'rolling_average_r': rolling_average,
            'win_loss_ratio': win_loss_ratio,
            'charts': {
                'distribution': self.chart_service.distribution_chart(
                    distribution, 'R Distribution Comparison'),
                'rolling_average_r': self.chart_service.line_chart(
                    rolling_average, 'Rolling Average R', 'Rolling avg', '#34d399'),
                'win_loss_ratio': self.chart_service.line_chart(
                    win_loss_ratio, 'Win R / Loss R Ratio', 'Win/Loss ratio', '#f472b6',
                    y_title='Ratio'),
            },
        }

    def default_structure_settings(self, args) -> StructureSettings:
        return StructureSettings.from_args(
            args, current_app.config.get('DEFAULT_RISK_POINTS', risk_stats.DEFAULT_RISK_POINTS))
