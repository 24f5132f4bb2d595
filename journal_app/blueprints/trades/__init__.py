"""
Trades Blueprint

Trade table with create/edit/delete, the infinite-scroll feed page, review
and screenshot editing, Markdown export and the PWA manifest.
"""

import logging
from urllib.parse import quote

from flask import (Blueprint, Response, abort, current_app, flash, jsonify, redirect,
                   render_template, request, url_for)

from journal_app.export import (TradeExporter, build_export_file_name, build_trade_markdown,
                                export_archive_name)
from journal_app.forms import (DIRECTION_CHOICES, PLATFORM_CHOICES, RESULT_CHOICES,
                               TRADE_MODE_CHOICES, ReviewForm, ScreenshotForm, TradeForm)
from journal_app.services import TradeService
from journal_app.tradingview import build_tradingview_url

logger = logging.getLogger(__name__)

trades_bp = Blueprint('trades', __name__, template_folder='templates')

MANIFEST = {
    'name': 'Trade Records',
    'short_name': 'Trade Records',
    'description': 'Track and review trade records with an infinite stream view.',
    'start_url': '/',
    'scope': '/',
    'display': 'standalone',
    'background_color': '#111827',
    'theme_color': '#111827',
    'orientation': 'landscape',
}


def _table_filters():
    return {
        'result': request.args.get('result', '').strip(),
        'trade_platform': request.args.get('tradePlatform', '').strip(),
        'trade_mode': request.args.get('tradeMode', '').strip(),
    }


def _redirect_with_error(message):
    return redirect(url_for('trades.index', error=message))


def _wants_json():
    return request.is_json or request.accept_mimetypes.best == 'application/json'


@trades_bp.app_template_global()
def tradingview_url(trade):
    """TradingView link for a trade row"""
    if not trade.symbol:
        return None
    return build_tradingview_url(trade.symbol, trade.timeframe, trade.entry_time)


@trades_bp.route('/')
def index():
    """Trade table"""
    filters = _table_filters()
    trades = TradeService().list_trades(**filters)
    return render_template('trades/index.html',
                           trades=trades,
                           filters=filters,
                           error=request.args.get('error'),
                           form=TradeForm())


@trades_bp.route('/trades', methods=['POST'])
def create():
    """Create a trade from the create dialog"""
    form = TradeForm()
    if not form.validate_on_submit():
        return _redirect_with_error(form.first_error())

    outcome = TradeService().create_trade(form.to_trade_data())
    if 'error' in outcome:
        return _redirect_with_error(outcome['error'])

    flash(outcome['message'], 'success')
    return redirect(url_for('trades.index'))


@trades_bp.route('/trades/<trade_id>/edit', methods=['GET', 'POST'])
def edit(trade_id):
    """Edit page for a single trade"""
    trade_service = TradeService()
    trade = trade_service.get_trade(trade_id)
    if trade is None:
        abort(404)

    form = TradeForm(trade=trade) if request.method == 'GET' else TradeForm()
    if request.method == 'POST':
        if not form.validate_on_submit():
            return _redirect_with_error(form.first_error())
        outcome = trade_service.update_trade(trade_id, form.to_trade_data())
        if 'error' in outcome:
            return _redirect_with_error(outcome['error'])
        flash(f'Trade {trade_id} updated', 'success')
        return redirect(url_for('trades.index'))

    return render_template('trades/edit.html',
                           trade=trade,
                           form=form,
                           review_form=ReviewForm(data={'entry_reason': trade.entry_reason or ''}),
                           screenshot_form=ScreenshotForm())


@trades_bp.route('/trades/<trade_id>/delete', methods=['POST'])
def delete(trade_id):
    outcome = TradeService().delete_trade(trade_id)
    if 'error' in outcome:
        return _redirect_with_error(outcome['error'])
    flash(f'Trade {trade_id} deleted', 'success')
    return redirect(url_for('trades.index'))


@trades_bp.route('/trades/<trade_id>/review', methods=['POST'])
def review(trade_id):
    """Save the post-trade review (form post or JSON from the feed)"""
    form = ReviewForm()
    if not form.validate_on_submit():
        message = 'Invalid review'
        if _wants_json():
            return jsonify({'success': False, 'error': message}), 400
        return _redirect_with_error(message)

    outcome = TradeService().update_review(trade_id, form.entry_reason.data)
    if _wants_json():
        if 'error' in outcome:
            status = 404 if outcome['error'] == 'Trade not found' else 500
            return jsonify({'success': False, 'error': outcome['error']}), status
        return jsonify({'success': True, 'entryReason': (form.entry_reason.data or '').strip() or None})

    if 'error' in outcome:
        return _redirect_with_error(outcome['error'])
    flash('Review saved', 'success')
    return redirect(url_for('trades.edit', trade_id=trade_id))


@trades_bp.route('/trades/<trade_id>/screenshots', methods=['POST'])
def attach_screenshots(trade_id):
    """Merge uploaded screenshot URLs into a trade"""
    form = ScreenshotForm()
    if not form.validate_on_submit() or not form.urls():
        message = 'No screenshot URLs provided'
        if _wants_json():
            return jsonify({'success': False, 'error': message}), 400
        return _redirect_with_error(message)

    outcome = TradeService().attach_screenshots(trade_id, form.urls())
    if _wants_json():
        if 'error' in outcome:
            status = 404 if outcome['error'] == 'Trade not found' else 500
            return jsonify({'success': False, 'error': outcome['error']}), status
        return jsonify({'success': True, 'screenshotUrl': outcome['screenshotUrl']})

    if 'error' in outcome:
        return _redirect_with_error(outcome['error'])
    flash('Screenshots attached', 'success')
    return redirect(url_for('trades.edit', trade_id=trade_id))


@trades_bp.route('/stream')
def stream():
    """Infinite-scroll feed page (data comes from /api/trades/stream)"""
    return render_template('stream/index.html',
                           result_choices=RESULT_CHOICES,
                           direction_choices=DIRECTION_CHOICES,
                           trade_mode_choices=TRADE_MODE_CHOICES,
                           platform_choices=PLATFORM_CHOICES,
                           page_size=current_app.config.get('STREAM_PAGE_SIZE', 10))


@trades_bp.route('/export')
def export_all():
    """Zip of every trade in the current table view, with screenshots"""
    trades = TradeService().list_trades(**_table_filters())
    exporter = TradeExporter(timeout=current_app.config.get('HTTP_TIMEOUT', 30))
    archive = exporter.build_zip(trades)
    logger.info(f"Exported {len(trades)} trades ({len(archive)} bytes)")
    return Response(
        archive,
        mimetype='application/zip',
        headers={'Content-Disposition': f'attachment; filename="{export_archive_name()}"'}
    )


@trades_bp.route('/trades/<trade_id>/export')
def export_one(trade_id):
    trade = TradeService().get_trade(trade_id)
    if trade is None:
        abort(404)
    file_name = build_export_file_name(trade)
    return Response(
        build_trade_markdown(trade),
        mimetype='text/markdown',
        headers={'Content-Disposition': f"attachment; filename*=UTF-8''{quote(file_name)}"}
    )


@trades_bp.route('/manifest.webmanifest')
def manifest():
    response = jsonify(MANIFEST)
    response.mimetype = 'application/manifest+json'
    return response
