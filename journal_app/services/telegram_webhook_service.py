"""
Telegram Webhook Service

Turns a photo sent to the bot into a journal entry: download the largest
photo size, read the trade fields off it with the vision model, create the
trade and reply in the chat.
"""

import logging
import math
from typing import Dict, Optional, Tuple

from journal_app.forms import compute_r_multiple
from journal_app.services.image_parse_service import (ImageParseService, normalize_direction,
                                                      normalize_result)
from journal_app.services.trade_service import TradeService
from journal_app.telegram import TelegramClient, TelegramError
from journal_app.wall_clock import parse_wall_clock

logger = logging.getLogger(__name__)

MISSING_FIELDS_REPLY = 'Image parsed, but required fields are missing. Please check the screenshot.'
CREATED_REPLY = 'Trade created successfully.'


def parse_number(value) -> Optional[float]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        number = float(trimmed)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_boolean(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized == 'true':
        return True
    if normalized == 'false':
        return False
    return None


def parse_string(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def parse_time(value):
    return parse_wall_clock(value) if isinstance(value, str) else None


def pick_largest_photo(photos):
    """Telegram lists photo sizes smallest first"""
    return photos[-1]


def build_trade_data(parsed: Dict, photo: Dict) -> Optional[Dict]:
    """
    Map vision-model fields onto Trade columns.

    Returns:
        Trade field dictionary, or None when a required field is missing
    """
    pnl_amount = parse_number(parsed.get('pnlAmount'))
    symbol = parse_string(parsed.get('symbol'))
    direction = normalize_direction(str(parsed['direction'])) if parsed.get('direction') else None
    result = normalize_result(str(parsed['result'])) if parsed.get('result') else None
    trade_mode = parse_string(parsed.get('tradeMode')) or 'live'
    entry_time = parse_time(parsed.get('entryTime'))
    exit_time = parse_time(parsed.get('exitTime'))
    entry_point = parse_number(parsed.get('entryPoint'))
    closing_point = parse_number(parsed.get('closingPoint'))

    required = (pnl_amount, symbol, direction, result, entry_time, exit_time,
                entry_point, closing_point)
    if any(value is None or value == '' for value in required):
        return None

    sl_point = parse_number(parsed.get('slPoint'))
    tp_point = parse_number(parsed.get('tpPoint'))
    confidence = parse_number(parsed.get('confidenceLevel'))

    return {
        'timeframe': parse_string(parsed.get('timeframe')),
        'trend_assessment': parse_string(parsed.get('trendAssessment')),
        'market_phase': parse_string(parsed.get('marketPhase')),
        'symbol': symbol,
        'direction': direction,
        'result': result,
        'trade_mode': trade_mode,
        'entry_time': entry_time,
        'exit_time': exit_time,
        'pnl_amount': pnl_amount,
        'setup_type': parse_string(parsed.get('setupType')),
        'setup_quality': None,
        'entry_type': parse_string(parsed.get('entryType')),
        'entry_point': entry_point,
        'closing_point': closing_point,
        'sl_point': sl_point,
        'tp_point': tp_point,
        'actual_r_multiple': compute_r_multiple(entry_point, sl_point, closing_point)
        if sl_point is not None else None,
        'planned_r_multiple': compute_r_multiple(entry_point, sl_point, tp_point)
        if sl_point is not None and tp_point is not None else None,
        'early_exit': parse_boolean(parsed.get('earlyExit')),
        'entry_reason': parse_string(parsed.get('entryReason')),
        'expected_scenario': None,
        'confidence_level': int(confidence)
        if confidence is not None and confidence.is_integer() else None,
        'screenshot_url': None,
        'telegram_file_id': photo.get('file_id'),
        'telegram_file_unique_id': photo.get('file_unique_id'),
    }


class TelegramWebhookService:
    """Service handling bot updates"""

    def __init__(self, telegram: Optional[TelegramClient] = None,
                 image_parser: Optional[ImageParseService] = None,
                 trade_service: Optional[TradeService] = None):
        self.telegram = telegram or TelegramClient()
        self.image_parser = image_parser or ImageParseService()
        self.trade_service = trade_service or TradeService()

    def handle_update(self, update: Dict) -> Tuple[Dict, int]:
        """
        Process one webhook update.

        Returns:
            (JSON body, HTTP status)
        """
        message = update.get('message')
        if not isinstance(message, dict):
            message = {}
        photos = message.get('photo')
        if not isinstance(photos, list):
            photos = []
        logger.info(f"Telegram update {update.get('update_id')}: "
                    f"message {message.get('message_id')}, {len(photos)} photo sizes")
        if not message or not photos:
            return {'ok': True}, 200

        chat = message.get('chat')
        chat_id = chat.get('id') if isinstance(chat, dict) else None
        photo = pick_largest_photo(photos)

        try:
            file_info = self.telegram.get_file(photo['file_id'])
            content, content_type = self.telegram.download_file(file_info.get('file_path', ''))
            parsed = self.image_parser.parse_trade_image(content, content_type)

            trade_data = build_trade_data(parsed, photo)
            if trade_data is None:
                logger.info('Telegram webhook skipped: missing required fields')
                self.telegram.send_message(chat_id, MISSING_FIELDS_REPLY)
                return {'ok': True, 'skipped': True}, 200

            outcome = self.trade_service.create_trade(trade_data)
            if 'error' in outcome:
                raise RuntimeError(outcome['error'])

            logger.info(f"Telegram webhook created trade {outcome['trade_id']}")
            self.telegram.send_message(chat_id, CREATED_REPLY)
            return {'ok': True}, 200

        except Exception as e:
            logger.error(f"Telegram webhook failed: {e}")
            reason = str(e) or 'Unknown error during processing.'
            try:
                self.telegram.send_message(chat_id, f'Processing failed: {reason}')
            except TelegramError as send_error:
                logger.error(f"Failed to report webhook failure to chat {chat_id}: {send_error}")
            return {'ok': False}, 500
