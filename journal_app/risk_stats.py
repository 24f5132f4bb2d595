"""
Risk and structure statistics over the trade history.

Everything here works on a chronologically ordered series of per-trade
values (R multiples or raw PnL) and reduces it with trailing windows:

- rolling worst loss and bottom-percentile loss average (left-tail risk)
- loss histograms (fixed R edges or equal-width |loss| bins)
- rolling average R and win/loss ratio (system structure)
- distribution comparison of the recent window against the full history

Windows are trailing and inclusive of the current point. A window size of
None (or <= 0) means "everything up to here".
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from journal_app.wall_clock import parse_wall_clock

DEFAULT_RISK_POINTS = 20


@dataclass
class TradeRiskInput:
    """Subset of trade columns the statistics need."""
    id: Union[str, int]
    entry_time: Union[datetime, str]
    direction: str
    entry_point: float
    closing_point: float
    sl_point: Optional[float] = None
    actual_r_multiple: Optional[float] = None
    pnl_amount: Optional[float] = None


@dataclass
class RiskSeriesPoint:
    id: Union[str, int]
    date: datetime
    label: str
    r: float


@dataclass
class RiskHistogramBucket:
    bucket: str
    count: int

    def to_dict(self):
        return {'bucket': self.bucket, 'count': self.count}


def _is_finite(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_wall_clock(str(value)) if value is not None else None
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
        except ValueError:
            parsed = datetime.min
    return parsed


def _id_key(value):
    text = str(value)
    return (0, int(text), text) if text.isdigit() else (1, 0, text)


def _sorted_trades(trades: Sequence[TradeRiskInput]) -> List[TradeRiskInput]:
    return sorted(trades, key=lambda t: (_as_datetime(t.entry_time), _id_key(t.id)))


def _label(index: int, date: datetime, label_mode: str) -> str:
    if label_mode == 'date':
        return date.strftime('%Y-%m-%d')
    return str(index + 1)


def resolve_r_multiple(trade: TradeRiskInput,
                       fallback_risk_points: Optional[float] = DEFAULT_RISK_POINTS) -> Optional[float]:
    """
    Resolve a trade's R multiple.

    Order of preference: PnL divided by the fixed risk budget, the stored
    actual R multiple, then price distance over stop distance (falling back
    to the risk budget when there is no usable stop).
    """
    fallback_ok = _is_finite(fallback_risk_points) and float(fallback_risk_points) > 0

    if _is_finite(trade.pnl_amount) and fallback_ok:
        return float(trade.pnl_amount) / float(fallback_risk_points)
    if _is_finite(trade.actual_r_multiple):
        return float(trade.actual_r_multiple)

    entry = trade.entry_point
    close = trade.closing_point
    if not (_is_finite(entry) and _is_finite(close)):
        return None

    risk_points = None
    if _is_finite(trade.sl_point):
        sl_distance = abs(float(entry) - float(trade.sl_point))
        if sl_distance > 0:
            risk_points = sl_distance
    if risk_points is None:
        fallback = float(fallback_risk_points) if _is_finite(fallback_risk_points) else DEFAULT_RISK_POINTS
        if fallback > 0:
            risk_points = fallback
    if risk_points is None or risk_points <= 0:
        return None

    if (trade.direction or '').strip().lower() == 'short':
        return (float(entry) - float(close)) / risk_points
    return (float(close) - float(entry)) / risk_points


def normalize_risk_series(trades: Sequence[TradeRiskInput],
                          fallback_risk_points: Optional[float] = DEFAULT_RISK_POINTS,
                          label_mode: str = 'index',
                          order: str = 'asc') -> List[RiskSeriesPoint]:
    """Build the chronological R series; trades without a resolvable R are dropped"""
    points = []
    for index, trade in enumerate(_sorted_trades(trades)):
        r = resolve_r_multiple(trade, fallback_risk_points)
        if r is None:
            continue
        date = _as_datetime(trade.entry_time)
        points.append(RiskSeriesPoint(id=trade.id, date=date, label=_label(index, date, label_mode), r=r))
    if order == 'desc':
        points.reverse()
    return points


def normalize_loss_pnl_series(trades: Sequence[TradeRiskInput],
                              label_mode: str = 'index',
                              order: str = 'asc') -> List[RiskSeriesPoint]:
    """Same ordering as normalize_risk_series, but the value is raw PnL"""
    points = []
    for index, trade in enumerate(_sorted_trades(trades)):
        if not _is_finite(trade.pnl_amount):
            continue
        date = _as_datetime(trade.entry_time)
        points.append(RiskSeriesPoint(id=trade.id, date=date, label=_label(index, date, label_mode),
                                      r=float(trade.pnl_amount)))
    if order == 'desc':
        points.reverse()
    return points


def get_window_start(index: int, window_size: Optional[int]) -> int:
    if not window_size or window_size <= 0:
        return 0
    return max(0, index - window_size + 1)


def _values(series: Sequence[RiskSeriesPoint]) -> pd.Series:
    return pd.Series([point.r for point in series], dtype='float64')


def _roll(values: pd.Series, window_size: Optional[int]):
    if not window_size or window_size <= 0:
        return values.expanding(min_periods=1)
    return values.rolling(window=int(window_size), min_periods=1)


def _to_points(series: Sequence[RiskSeriesPoint], values) -> List[Dict]:
    points = []
    for point, value in zip(series, values):
        points.append({
            'x': point.label,
            'value': None if value is None or pd.isna(value) else float(value),
        })
    return points


def _apply_mode(value, mode: str):
    if value is None or pd.isna(value):
        return None
    return abs(value) if mode == 'absolute' else value


def calculate_rolling_max_loss(series: Sequence[RiskSeriesPoint],
                               window_size: Optional[int],
                               mode: str = 'signed') -> List[Dict]:
    """Worst loss inside each trailing window (None when the window has no loss)"""
    if not series:
        return []
    values = _values(series)
    worst = _roll(values.where(values < 0), window_size).min()
    return _to_points(series, [_apply_mode(v, mode) for v in worst])


def calculate_bottom_loss_average(series: Sequence[RiskSeriesPoint],
                                  window_size: Optional[int],
                                  bottom_percent: float,
                                  mode: str = 'signed') -> List[Dict]:
    """Mean of the worst ceil(n * bottom_percent) losses in each trailing window"""
    values = np.array([point.r for point in series], dtype=float)
    averages = []
    for index in range(len(series)):
        window = values[get_window_start(index, window_size):index + 1]
        losses = np.sort(window[window < 0])
        if not losses.size:
            averages.append(None)
            continue
        slice_size = max(1, math.ceil(losses.size * bottom_percent))
        averages.append(_apply_mode(float(losses[:slice_size].mean()), mode))
    return _to_points(series, averages)


def format_risk_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    text = f'{value:.2f}'
    return text[:-3] if text.endswith('.00') else text


def _last_window_values(series: Sequence[RiskSeriesPoint], window_size: Optional[int]) -> np.ndarray:
    start = get_window_start(len(series) - 1, window_size)
    return np.array([point.r for point in series[start:]], dtype=float)


def _build_buckets(edges: List[float]):
    buckets = []
    upper = 0.0
    for edge in edges:
        buckets.append((edge, upper, f'{format_risk_value(edge)}R to {format_risk_value(upper)}R'))
        upper = edge
    last_edge = edges[-1]
    buckets.append((float('-inf'), last_edge, f'<= {format_risk_value(last_edge)}R'))
    return buckets


def calculate_loss_histogram(series: Sequence[RiskSeriesPoint],
                             window_size: Optional[int],
                             bucket_edges: Sequence[float]) -> List[RiskHistogramBucket]:
    """
    Count losses of the most recent window into R buckets.

    Negative edges [-1, -2] give buckets (-1, 0], (-2, -1] and a tail bucket
    <= -2. Non-numeric or non-negative edges are ignored.
    """
    if not series:
        return []
    window = _last_window_values(series, window_size)
    losses = window[window < 0]
    if not losses.size:
        return []

    edges = sorted(
        (float(edge) for edge in bucket_edges if _is_finite(edge) and float(edge) < 0),
        reverse=True,
    )
    if not edges:
        return [RiskHistogramBucket(bucket='All losses', count=int(losses.size))]

    buckets = _build_buckets(edges)
    counts = [0] * len(buckets)
    for value in losses:
        for index, (low, high, _) in enumerate(buckets):
            if low < value <= high:
                counts[index] += 1
                break
        else:
            if value <= buckets[-1][0]:
                counts[-1] += 1

    return [RiskHistogramBucket(bucket=label, count=counts[index])
            for index, (_, _, label) in enumerate(buckets)]


def calculate_absolute_loss_histogram(series: Sequence[RiskSeriesPoint],
                                      window_size: Optional[int],
                                      bin_count: int,
                                      max_value: float) -> List[RiskHistogramBucket]:
    """Equal-width bins of |loss| over [0, max_value); larger losses land in the last bin"""
    if not series or bin_count < 1 or not _is_finite(max_value) or max_value <= 0:
        return []
    window = _last_window_values(series, window_size)
    losses = np.abs(window[window < 0])
    if not losses.size:
        return []

    width = float(max_value) / bin_count
    indexes = np.minimum((losses // width).astype(int), bin_count - 1)
    counts = np.bincount(indexes, minlength=bin_count)

    buckets = []
    for index in range(bin_count):
        low = index * width
        if index == bin_count - 1:
            label = f'>= {format_risk_value(low)}'
        else:
            label = f'{format_risk_value(low)}-{format_risk_value(low + width)}'
        buckets.append(RiskHistogramBucket(bucket=label, count=int(counts[index])))
    return buckets


def calculate_rolling_average_r(series: Sequence[RiskSeriesPoint],
                                window_size: Optional[int]) -> List[Dict]:
    if not series:
        return []
    return _to_points(series, _roll(_values(series), window_size).mean())


def calculate_rolling_win_loss_ratio(series: Sequence[RiskSeriesPoint],
                                     window_size: Optional[int]) -> List[Dict]:
    """Average winning R over the magnitude of the average losing R"""
    if not series:
        return []
    values = _values(series)
    avg_win = _roll(values.where(values > 0), window_size).mean()
    avg_loss = _roll(values.where(values < 0), window_size).mean()
    return _to_points(series, avg_win / avg_loss.abs())


def calculate_distribution_comparison(series: Sequence[RiskSeriesPoint],
                                      window_size: Optional[int],
                                      range_min: float,
                                      range_max: float,
                                      bin_count: int,
                                      mode: str = 'density') -> List[Dict]:
    """
    Histogram of the whole history ('base') against the recent window ('recent').

    Values outside [range_min, range_max] are clipped into the edge bins. In
    density mode each side is divided by its own sample size so the two
    shapes are comparable.
    """
    if bin_count < 1 or not (_is_finite(range_min) and _is_finite(range_max)) or range_max <= range_min:
        return []

    edges = np.linspace(float(range_min), float(range_max), int(bin_count) + 1)
    base_values = np.clip(np.array([p.r for p in series], dtype=float), range_min, range_max)
    recent_values = np.clip(_last_window_values(series, window_size) if series else np.array([]),
                            range_min, range_max)

    base_counts, _ = np.histogram(base_values, bins=edges)
    recent_counts, _ = np.histogram(recent_values, bins=edges)

    if mode == 'density':
        base_total = base_values.size
        recent_total = recent_values.size
        base_side = base_counts / base_total if base_total else np.zeros(len(base_counts))
        recent_side = recent_counts / recent_total if recent_total else np.zeros(len(recent_counts))
    else:
        base_side, recent_side = base_counts, recent_counts

    return [
        {
            'bin': format_risk_value(round(float(edges[index]), 2)),
            'base': float(base_side[index]),
            'recent': float(recent_side[index]),
        }
        for index in range(int(bin_count))
    ]
