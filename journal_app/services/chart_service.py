"""
Chart Service

Turns risk/structure statistics into Plotly.js figure dictionaries:
- line charts for rolling series (with optional threshold reference line)
- bar charts for loss histograms
- overlaid bars for distribution comparison
"""

from typing import Any, Dict, List, Optional

from flask import current_app

GRID_COLOR = 'rgba(255,255,255,0.08)'


class ChartService:
    """Service for generating chart data and configurations"""

    def __init__(self, theme: Optional[str] = None):
        self.theme = theme or current_app.config.get('CHART_THEME', 'plotly_dark')

    def line_chart(self, points: List[Dict], title: str, name: str, color: str,
                   y_title: str = 'R', threshold: Optional[float] = None) -> Dict[str, Any]:
        """
        Line figure for a rolling series.

        Args:
            points: [{'x': label, 'value': float|None}] as produced by risk_stats
            threshold: draws a dashed horizontal reference line when given
        """
        traces = [{
            'type': 'scatter',
            'mode': 'lines',
            'name': name,
            'x': [point['x'] for point in points],
            'y': [point['value'] for point in points],
            'line': {'color': color, 'width': 2},
            'connectgaps': False,
        }]
        layout = self.get_chart_layout(title, x_title='Trade #', y_title=y_title)
        if threshold is not None:
            layout['shapes'] = [{
                'type': 'line',
                'xref': 'paper',
                'x0': 0,
                'x1': 1,
                'y0': threshold,
                'y1': threshold,
                'line': {'color': '#f87171', 'dash': 'dash', 'width': 1},
            }]
        return {'data': traces, 'layout': layout}

    def histogram_chart(self, buckets, title: str, color: str = '#f59e0b') -> Dict[str, Any]:
        traces = [{
            'type': 'bar',
            'name': 'Losses',
            'x': [bucket.bucket for bucket in buckets],
            'y': [bucket.count for bucket in buckets],
            'marker': {'color': color},
        }]
        return {
            'data': traces,
            'layout': self.get_chart_layout(title, x_title='Bucket', y_title='Count'),
        }

    def distribution_chart(self, rows: List[Dict], title: str) -> Dict[str, Any]:
        bins = [row['bin'] for row in rows]
        traces = [
            {
                'type': 'bar',
                'name': 'Base',
                'x': bins,
                'y': [row['base'] for row in rows],
                'marker': {'color': '#a1a1aa', 'opacity': 0.35},
            },
            {
                'type': 'bar',
                'name': 'Recent',
                'x': bins,
                'y': [row['recent'] for row in rows],
                'marker': {'color': '#60a5fa', 'opacity': 0.55},
            },
        ]
        layout = self.get_chart_layout(title, x_title='R', y_title='Share')
        layout['barmode'] = 'overlay'
        return {'data': traces, 'layout': layout}

    def get_chart_config(self) -> Dict[str, Any]:
        """Plotly configuration shared by every stats chart"""
        return {
            'displayModeBar': True,
            'displaylogo': False,
            'modeBarButtonsToRemove': ['pan2d', 'lasso2d', 'select2d'],
            'responsive': True
        }

    def get_chart_layout(self, title: str, x_title: str = '', y_title: str = '') -> Dict[str, Any]:
        return {
            'template': self.theme,
            'title': title,
            'paper_bgcolor': 'rgba(0,0,0,0)',
            'plot_bgcolor': 'rgba(0,0,0,0)',
            'font': {'color': '#e4e4e7'},
            'margin': {'l': 50, 'r': 20, 't': 50, 'b': 50},
            'height': 300,
            'xaxis': {'title': x_title, 'gridcolor': GRID_COLOR, 'showgrid': True},
            'yaxis': {'title': y_title, 'gridcolor': GRID_COLOR, 'showgrid': True},
            'showlegend': True,
            'legend': {'x': 0.01, 'y': 0.99, 'bgcolor': 'rgba(0,0,0,0.5)'},
        }
