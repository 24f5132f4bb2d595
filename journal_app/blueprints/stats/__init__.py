"""
Stats Blueprint

Risk control (left-tail losses) and R structure pages rendered with Plotly.js.
"""

from flask import Blueprint, render_template, request

from journal_app.services import StatsService
from journal_app.services.stats_service import RiskSettings

stats_bp = Blueprint('stats', __name__, template_folder='templates')


@stats_bp.route('')
def risk():
    """Risk statistics page"""
    stats_service = StatsService()
    stats = stats_service.get_risk_stats(RiskSettings.from_args(request.args))
    return render_template('stats/risk.html',
                           stats=stats,
                           chart_config=stats_service.chart_service.get_chart_config())


@stats_bp.route('/structure')
def structure():
    """R structure page"""
    stats_service = StatsService()
    settings = stats_service.default_structure_settings(request.args)
    stats = stats_service.get_structure_stats(settings)
    return render_template('stats/structure.html',
                           stats=stats,
                           chart_config=stats_service.chart_service.get_chart_config())
