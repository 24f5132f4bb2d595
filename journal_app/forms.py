"""
Trade Forms

Flask-WTF forms for creating and editing trades, plus the derived R-multiple
calculation shared with the Telegram webhook.
"""

import math
import re

from flask_wtf import FlaskForm
from wtforms import (BooleanField, FloatField, HiddenField, IntegerField, SelectField,
                     StringField, SubmitField, TextAreaField)
from wtforms.validators import (DataRequired, InputRequired, NumberRange, Optional, Regexp,
                                ValidationError)

from journal_app.screenshot_urls import join_screenshot_urls, split_screenshot_urls
from journal_app.wall_clock import format_ymd_hms, parse_wall_clock

DATETIME_PATTERN = r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$'
DATETIME_MESSAGE = 'Use format YYYY-MM-DD HH:mm:ss'

SYMBOL_CHOICES = ['XAUUSD']
PLATFORM_CHOICES = ['Bybit', 'Pepperstone']
DIRECTION_CHOICES = ['long', 'short']
RESULT_CHOICES = ['win', 'loss']
TRADE_MODE_CHOICES = ['live', 'demo']
TIMEFRAME_CHOICES = ['5m', '15m', '1h', '4h', '1D']
TREND_CHOICES = [
    'Strong Bull Trend',
    'Strong Bear Trend',
    'Weak Trend Channel',
    'Weak Bull Trend Channel',
    'Weak Bear Trend Channel',
    'Trading Range',
    'Breakout Mode',
]
MARKET_PHASE_CHOICES = [
    'Pullback',
    'Second Leg Pullback',
    'Breakout Follow-through',
    'Failed Breakout',
    'Exhaustion',
]
SETUP_TYPE_CHOICES = ['H2', 'L2', 'Wedge']
ENTRY_TYPE_CHOICES = ['market', 'limit', 'stop']


def round_to_two(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def compute_r_multiple(entry, sl, target):
    """
    R multiple of moving from entry to target, with entry-to-stop as 1R.

    Works for both directions: a short has a negative risk and a negative
    reward, so a profitable short still comes out positive.
    """
    try:
        risk = float(entry) - float(sl)
        reward = float(target) - float(entry)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(risk) or risk == 0 or not math.isfinite(reward):
        return None
    return round_to_two(reward / risk)


def ensure_option(options, value):
    """Prepend the current value so editing never silently drops it"""
    if not value:
        return list(options)
    return list(options) if value in options else [value] + list(options)


def _choices(options, value=None, blank=False):
    values = ensure_option(options, value)
    choices = [(v, v) for v in values]
    return [('', '—')] + choices if blank else choices


def normalize_datetime_input(value):
    if value is None:
        return value
    trimmed = value.strip()
    if re.match(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$', trimmed):
        return f'{trimmed}:00'
    return trimmed


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


class TradeForm(FlaskForm):
    """Create/edit form for a trade"""
    id = HiddenField('ID')

    # Trade details
    pnl_amount = FloatField('PnL amount', validators=[InputRequired(message='PnL amount is required')])
    symbol = SelectField('Symbol', default='XAUUSD', validators=[DataRequired(message='Symbol is required')],
                         filters=[_strip])
    trade_platform = SelectField('Trade platform', default='Bybit',
                                 validators=[DataRequired(message='Trade platform is required')])
    direction = SelectField('Direction', default='long', validators=[DataRequired(message='Direction is required')])
    result = SelectField('Result', default='win', validators=[DataRequired(message='Result is required')])
    trade_mode = SelectField('Trade mode', default='live', validators=[DataRequired(message='Trade mode is required')])
    entry_time = StringField('Entry time', filters=[normalize_datetime_input], validators=[
        DataRequired(message='Entry time is required'),
        Regexp(DATETIME_PATTERN, message=DATETIME_MESSAGE),
    ])
    exit_time = StringField('Exit time', filters=[normalize_datetime_input], validators=[
        DataRequired(message='Exit time is required'),
        Regexp(DATETIME_PATTERN, message=DATETIME_MESSAGE),
    ])
    early_exit = BooleanField('Early exit', default=False)

    # Context
    timeframe = SelectField('Timeframe', default='5m', validators=[Optional()])
    trend_assessment = SelectField('Trend assessment', default='Weak Bull Trend Channel',
                                   validators=[Optional()])
    market_phase = SelectField('Market phase', default='Pullback', validators=[Optional()])

    # Setup
    setup_type = SelectField('Setup type', default='H2', validators=[Optional()])
    setup_quality = StringField('Setup quality', validators=[Optional()], filters=[_strip])
    entry_type = SelectField('Entry type', default='stop', validators=[Optional()])
    confidence_level = IntegerField('Confidence (1-5)', default=3, validators=[
        Optional(), NumberRange(min=1, max=5, message='confidenceLevel must be 1-5')
    ])

    # Risk & management
    entry_point = FloatField('Entry point', validators=[InputRequired(message='Entry point is required')])
    closing_point = FloatField('Closing point',
                               validators=[InputRequired(message='Closing point is required')])
    sl_point = FloatField('SL point', validators=[Optional()])
    tp_point = FloatField('TP point', validators=[Optional()])

    # Review
    entry_reason = TextAreaField('Post-trade review', validators=[Optional()])
    expected_scenario = TextAreaField('Expected scenario', validators=[Optional()])
    screenshot_url = TextAreaField('Screenshot URLs', validators=[Optional()])

    submit = SubmitField('Save')

    def __init__(self, *args, trade=None, **kwargs):
        if trade is not None and 'obj' not in kwargs and 'formdata' not in kwargs:
            kwargs['data'] = trade_to_form_data(trade)
        super().__init__(*args, **kwargs)
        self.symbol.choices = _choices(SYMBOL_CHOICES, self.symbol.data)
        self.trade_platform.choices = _choices(PLATFORM_CHOICES, self.trade_platform.data)
        self.direction.choices = _choices(DIRECTION_CHOICES, self.direction.data)
        self.result.choices = _choices(RESULT_CHOICES, self.result.data)
        self.trade_mode.choices = _choices(TRADE_MODE_CHOICES, self.trade_mode.data)
        self.timeframe.choices = _choices(TIMEFRAME_CHOICES, self.timeframe.data, blank=True)
        self.trend_assessment.choices = _choices(TREND_CHOICES, self.trend_assessment.data, blank=True)
        self.market_phase.choices = _choices(MARKET_PHASE_CHOICES, self.market_phase.data, blank=True)
        self.setup_type.choices = _choices(SETUP_TYPE_CHOICES, self.setup_type.data, blank=True)
        self.entry_type.choices = _choices(ENTRY_TYPE_CHOICES, self.entry_type.data, blank=True)

    def validate_entry_time(self, field):
        if field.data and parse_wall_clock(field.data) is None:
            raise ValidationError(DATETIME_MESSAGE)

    def validate_exit_time(self, field):
        if field.data and parse_wall_clock(field.data) is None:
            raise ValidationError(DATETIME_MESSAGE)

    def to_trade_data(self):
        """Map validated form data onto Trade columns, deriving R multiples"""
        entry_point = self.entry_point.data
        closing_point = self.closing_point.data
        sl_point = self.sl_point.data
        tp_point = self.tp_point.data

        actual_r = compute_r_multiple(entry_point, sl_point, closing_point) \
            if sl_point is not None else None
        planned_r = compute_r_multiple(entry_point, sl_point, tp_point) \
            if sl_point is not None and tp_point is not None else None

        screenshots = join_screenshot_urls(
            re.split(r'[,\n]', self.screenshot_url.data or '')
        )

        return {
            'pnl_amount': self.pnl_amount.data,
            'symbol': self.symbol.data,
            'trade_platform': _blank_to_none(self.trade_platform.data),
            'direction': self.direction.data,
            'result': self.result.data,
            'trade_mode': self.trade_mode.data or 'live',
            'entry_time': parse_wall_clock(self.entry_time.data),
            'exit_time': parse_wall_clock(self.exit_time.data),
            'early_exit': bool(self.early_exit.data),
            'timeframe': _blank_to_none(self.timeframe.data),
            'trend_assessment': _blank_to_none(self.trend_assessment.data),
            'market_phase': _blank_to_none(self.market_phase.data),
            'setup_type': _blank_to_none(self.setup_type.data),
            'setup_quality': _blank_to_none(self.setup_quality.data),
            'entry_type': _blank_to_none(self.entry_type.data),
            'confidence_level': self.confidence_level.data,
            'entry_point': entry_point,
            'closing_point': closing_point,
            'sl_point': sl_point,
            'tp_point': tp_point,
            'actual_r_multiple': actual_r,
            'planned_r_multiple': planned_r,
            'entry_reason': _blank_to_none(self.entry_reason.data),
            'expected_scenario': _blank_to_none(self.expected_scenario.data),
            'screenshot_url': screenshots or None,
        }

    def first_error(self):
        for field_name, messages in self.errors.items():
            if messages:
                return f'{getattr(self, field_name).label.text}: {messages[0]}'
        return 'Missing/invalid fields. Please complete the form.'


def trade_to_form_data(trade):
    """Prefill values for editing an existing trade"""
    if trade is None:
        return {}
    return {
        'id': trade.id,
        'pnl_amount': trade.pnl_amount,
        'symbol': trade.symbol,
        'trade_platform': trade.trade_platform or '',
        'direction': trade.direction,
        'result': trade.result,
        'trade_mode': trade.trade_mode,
        'entry_time': format_ymd_hms(trade.entry_time),
        'exit_time': format_ymd_hms(trade.exit_time),
        'early_exit': bool(trade.early_exit),
        'timeframe': trade.timeframe or '',
        'trend_assessment': trade.trend_assessment or '',
        'market_phase': trade.market_phase or '',
        'setup_type': trade.setup_type or '',
        'setup_quality': trade.setup_quality or '',
        'entry_type': trade.entry_type or '',
        'confidence_level': trade.confidence_level,
        'entry_point': trade.entry_point,
        'closing_point': trade.closing_point,
        'sl_point': trade.sl_point,
        'tp_point': trade.tp_point,
        'entry_reason': trade.entry_reason or '',
        'expected_scenario': trade.expected_scenario or '',
        'screenshot_url': '\n'.join(split_screenshot_urls(trade.screenshot_url)),
    }


class ReviewForm(FlaskForm):
    """Post-trade review editor"""
    entry_reason = TextAreaField('Post-trade review', validators=[Optional()])
    submit = SubmitField('Save review')


class ScreenshotForm(FlaskForm):
    """Attach already-uploaded screenshot URLs to a trade"""
    screenshot_url = TextAreaField('Screenshot URLs', validators=[DataRequired()])
    submit = SubmitField('Attach')

    def urls(self):
        return split_screenshot_urls(
            ','.join(re.split(r'[,\n]', self.screenshot_url.data or ''))
        )
