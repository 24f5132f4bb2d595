"""
SQLAlchemy Models for the Trade Journal

One row per discretionary trade. Times are naive wall-clock datetimes and the
primary key is a 15-digit snowflake string (see journal_app.snowflake).
"""

from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint

from journal_app.screenshot_urls import first_screenshot_url, split_screenshot_urls
from journal_app.wall_clock import format_ymd_hms

db = SQLAlchemy()

class Trade(db.Model):
    """Trades table"""
    __tablename__ = 'trades'

    id = db.Column(db.String(15), primary_key=True)

    # Market context
    timeframe = db.Column(db.String(20))
    trend_assessment = db.Column(db.String(100))
    market_phase = db.Column(db.String(100))

    # Trade details
    symbol = db.Column(db.String(30), nullable=False, index=True)
    trade_platform = db.Column(db.String(50), index=True)
    direction = db.Column(db.String(10), nullable=False)
    result = db.Column(db.String(10), nullable=False, index=True)
    trade_mode = db.Column(db.String(10), nullable=False, default='live', index=True)
    entry_time = db.Column(db.DateTime, nullable=False, index=True)
    exit_time = db.Column(db.DateTime, nullable=False)
    pnl_amount = db.Column(db.Float, nullable=False)

    # Setup
    setup_type = db.Column(db.String(50))
    setup_quality = db.Column(db.String(50))
    entry_type = db.Column(db.String(20))

    # Risk & management
    entry_point = db.Column(db.Float, nullable=False)
    closing_point = db.Column(db.Float, nullable=False)
    sl_point = db.Column(db.Float)
    tp_point = db.Column(db.Float)
    actual_r_multiple = db.Column(db.Float)
    planned_r_multiple = db.Column(db.Float)
    early_exit = db.Column(db.Boolean)

    # Review
    entry_reason = db.Column(db.Text)
    expected_scenario = db.Column(db.Text)
    confidence_level = db.Column(db.Integer)
    screenshot_url = db.Column(db.Text)

    # Bot-created trades keep a reference to the source photo
    telegram_file_id = db.Column(db.String(200))
    telegram_file_unique_id = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            'confidence_level IS NULL OR (confidence_level >= 1 AND confidence_level <= 5)',
            name='check_confidence_level'
        ),
    )

    def __repr__(self):
        return f'<Trade {self.id}: {self.symbol} {self.direction} {self.result}>'

    @property
    def screenshot_urls(self):
        """Return screenshots as a list"""
        return split_screenshot_urls(self.screenshot_url)

    @property
    def cover_screenshot(self):
        return first_screenshot_url(self.screenshot_url)

    def to_dict(self):
        """Serialize for JSON responses (camelCase keys, wall-clock times)"""
        return {
            'id': str(self.id),
            'timeframe': self.timeframe,
            'trendAssessment': self.trend_assessment,
            'marketPhase': self.market_phase,
            'symbol': self.symbol,
            'tradePlatform': self.trade_platform,
            'direction': self.direction,
            'result': self.result,
            'tradeMode': self.trade_mode,
            'entryTime': format_ymd_hms(self.entry_time),
            'exitTime': format_ymd_hms(self.exit_time),
            'pnlAmount': self.pnl_amount,
            'setupType': self.setup_type,
            'setupQuality': self.setup_quality,
            'entryType': self.entry_type,
            'entryPoint': self.entry_point,
            'closingPoint': self.closing_point,
            'slPoint': self.sl_point,
            'tpPoint': self.tp_point,
            'actualRMultiple': self.actual_r_multiple,
            'plannedRMultiple': self.planned_r_multiple,
            'earlyExit': self.early_exit,
            'entryReason': self.entry_reason,
            'expectedScenario': self.expected_scenario,
            'confidenceLevel': self.confidence_level,
            'screenshotUrl': self.screenshot_url,
        }

    def to_risk_input(self):
        """Project the columns the risk statistics need"""
        from journal_app.risk_stats import TradeRiskInput
        return TradeRiskInput(
            id=self.id,
            entry_time=self.entry_time,
            direction=self.direction,
            entry_point=self.entry_point,
            closing_point=self.closing_point,
            sl_point=self.sl_point,
            actual_r_multiple=self.actual_r_multiple,
            pnl_amount=self.pnl_amount,
        )

# Columns a form or webhook may write
EDITABLE_FIELDS = (
    'timeframe', 'trend_assessment', 'market_phase', 'symbol', 'trade_platform',
    'direction', 'result', 'trade_mode', 'entry_time', 'exit_time', 'pnl_amount',
    'setup_type', 'setup_quality', 'entry_type', 'entry_point', 'closing_point',
    'sl_point', 'tp_point', 'actual_r_multiple', 'planned_r_multiple', 'early_exit',
    'entry_reason', 'expected_scenario', 'confidence_level', 'screenshot_url',
    'telegram_file_id', 'telegram_file_unique_id',
)

# Utility functions for common queries
def newest_first(query):
    """Feed ordering: newest entry first, id breaks ties"""
    return query.order_by(Trade.entry_time.desc(), Trade.id.desc())

def oldest_first(query):
    return query.order_by(Trade.entry_time.asc(), Trade.id.asc())
