"""
API Blueprint

JSON endpoints: trade feed paging, screenshot parsing and upload, the
Telegram bot webhook, the one-off id migration and summary statistics.
"""

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from journal_app.services import (BlobService, BlobStorageError, ImageParseError,
                                  ImageParseService, TelegramWebhookService, TradeService)

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _truthy(value):
    return (value or '').strip().lower() in ('1', 'true')


def _secret_matches(expected, provided):
    if not expected or provided is None:
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


@api_bp.route('/trades/stream')
def trades_stream():
    """Page through trades for the infinite-scroll feed"""
    try:
        page = TradeService().stream_trades(
            offset=request.args.get('offset'),
            limit=request.args.get('limit'),
            result=request.args.get('result'),
            direction=request.args.get('direction'),
            trade_mode=request.args.get('tradeMode'),
            trade_platform=request.args.get('tradePlatform'),
            trade_id=request.args.get('id'),
            fetch_all=_truthy(request.args.get('fetchAll')),
        )
        return jsonify(page)
    except Exception as e:
        logger.error(f"Trade stream failed: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@api_bp.route('/trades/statistics')
def trade_statistics():
    statistics = TradeService().get_trade_statistics()
    if 'error' in statistics:
        return jsonify({'success': False, 'error': statistics['error']}), 500
    return jsonify({'success': True, 'data': statistics})


@api_bp.route('/trades/parse-image', methods=['POST'])
def parse_image():
    """Read trade fields off an uploaded screenshot"""
    parser = ImageParseService()
    if not parser.api_key:
        return jsonify({'success': False, 'error': 'Missing DASHSCOPE_API_KEY'}), 500

    upload = request.files.get('file')
    if upload is None:
        return jsonify({'success': False, 'error': 'Missing image file'}), 400

    try:
        fields = parser.parse_trade_image(upload.read(), upload.mimetype or 'image/png')
    except ImageParseError as e:
        return jsonify({'success': False, 'error': str(e)}), 502
    except Exception as e:
        logger.error(f"Image parse failed: {e}")
        return jsonify({'success': False, 'error': str(e) or 'AI parse failed'}), 500

    return jsonify({'data': fields})


@api_bp.route('/screenshot/upload', methods=['POST'])
def upload_screenshot():
    """Store the raw request body in the blob store"""
    body = request.get_data()
    if not body:
        return jsonify({'success': False, 'error': 'Missing file body'}), 400

    original_name = request.args.get('filename') or 'screenshot'
    try:
        blob = BlobService().upload_screenshot(body, original_name, request.content_type)
    except BlobStorageError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify(blob)


@api_bp.route('/telegram/webhook', methods=['POST'])
def telegram_webhook():
    """Create trades from photos sent to the Telegram bot"""
    logger.info(f"Telegram webhook hit ({request.method} {request.path})")

    secret = current_app.config.get('TELEGRAM_WEBHOOK_SECRET')
    if secret:
        header = request.headers.get('X-Telegram-Bot-Api-Secret-Token')
        if not _secret_matches(secret, header):
            logger.warning('Telegram webhook secret mismatch')
            return jsonify({'ok': False}), 401
    else:
        logger.warning('Telegram webhook secret missing in config')

    update = request.get_json(silent=True)
    if not isinstance(update, dict):
        logger.warning('Telegram webhook invalid JSON body')
        return jsonify({'ok': False}), 400

    body, status = TelegramWebhookService().handle_update(update)
    return jsonify(body), status


@api_bp.route('/trades/migrate-ids', methods=['POST'])
def migrate_ids():
    """Re-key legacy trades with snowflake ids"""
    secret = current_app.config.get('MIGRATE_TRADE_IDS_SECRET')
    if not _secret_matches(secret, request.headers.get('X-Migrate-Secret')):
        return jsonify({'ok': False, 'error': 'Unauthorized'}), 401

    try:
        return jsonify(TradeService().migrate_ids())
    except Exception as e:
        return jsonify({'ok': False, 'error': str(e)}), 500
