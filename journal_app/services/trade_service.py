"""
Trade Service Layer

Trade journal operations for the Flask application: listing and paging the
feed, create/update/delete, review and screenshot edits, and the one-off id
migration to snowflake ids.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy import func

from journal_app.models import db, Trade, EDITABLE_FIELDS, newest_first, oldest_first
from journal_app.screenshot_urls import merge_screenshot_urls
from journal_app.snowflake import generate_snowflake_id, is_valid_snowflake_id

logger = logging.getLogger(__name__)

DEFAULT_STREAM_LIMIT = 10
MAX_STREAM_LIMIT = 50


def _parse_int(value, fallback: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback


def _active_filter(value: Optional[str]) -> Optional[str]:
    """Blank and 'all' mean no filter"""
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == 'all':
        return None
    return value


def _id_sort_key(trade_id):
    text = str(trade_id)
    return (0, int(text), text) if text.isdigit() else (1, 0, text)


class TradeService:
    """Service for trade operations in Flask app"""

    def list_trades(self, result: Optional[str] = None, trade_platform: Optional[str] = None,
                    trade_mode: Optional[str] = None) -> List[Trade]:
        """Table view: case-insensitive substring filters, newest first"""
        query = Trade.query
        filters = {
            Trade.result: result,
            Trade.trade_platform: trade_platform,
            Trade.trade_mode: trade_mode,
        }
        for column, value in filters.items():
            value = (value or '').strip()
            if value:
                query = query.filter(column.ilike(f'%{value}%'))
        return newest_first(query).all()

    def stream_trades(self, offset=0, limit=None, result=None, direction=None, trade_mode=None,
                      trade_platform=None, trade_id=None, fetch_all=False) -> Dict:
        """
        Page through trades for the infinite-scroll feed.

        Args:
            offset: rows to skip (negative values become 0)
            limit: page size, clamped to [1, STREAM_MAX_LIMIT]
            result, direction, trade_mode, trade_platform: case-insensitive
                exact filters; blank or 'all' disables a filter
            trade_id: exact id filter, ignored unless all digits
            fetch_all: ignore offset/limit and return everything

        Returns:
            Dictionary with 'items', 'total' and 'hasMore'
        """
        default_limit = current_app.config.get('STREAM_PAGE_SIZE', DEFAULT_STREAM_LIMIT)
        max_limit = current_app.config.get('STREAM_MAX_LIMIT', MAX_STREAM_LIMIT)
        offset = max(0, _parse_int(offset, 0))
        limit = min(max_limit, max(1, _parse_int(limit, default_limit)))

        query = Trade.query
        filters = {
            Trade.result: _active_filter(result),
            Trade.direction: _active_filter(direction),
            Trade.trade_mode: _active_filter(trade_mode),
            Trade.trade_platform: _active_filter(trade_platform),
        }
        for column, value in filters.items():
            if value is not None:
                query = query.filter(func.lower(column) == value.lower())

        trade_id = (trade_id or '').strip()
        if trade_id.isdigit():
            query = query.filter(Trade.id == trade_id)

        total = query.count()
        ordered = newest_first(query)
        if fetch_all:
            items = ordered.all()
        else:
            items = ordered.offset(offset).limit(limit).all()

        return {
            'items': [trade.to_dict() for trade in items],
            'total': total,
            'hasMore': False if fetch_all else offset + len(items) < total,
        }

    def get_trade(self, trade_id) -> Optional[Trade]:
        return db.session.get(Trade, str(trade_id))

    def create_trade(self, trade_data: Dict, trade_id: Optional[str] = None) -> Dict:
        """Create a new trade"""
        try:
            new_trade = Trade(id=trade_id or generate_snowflake_id())
            self._apply(new_trade, trade_data)

            db.session.add(new_trade)
            db.session.commit()
            logger.info(f"Created trade {new_trade.id} ({new_trade.symbol} {new_trade.direction})")

            return {
                'success': True,
                'trade_id': new_trade.id,
                'message': f'Trade created for {new_trade.symbol}',
                'created_at': new_trade.created_at.isoformat()
            }

        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to create trade: {e}")
            return {'error': f'Failed to create trade: {str(e)}'}

    def update_trade(self, trade_id, update_data: Dict) -> Dict:
        """Update an existing trade"""
        try:
            trade = self.get_trade(trade_id)
            if not trade:
                return {'error': 'Trade not found'}

            self._apply(trade, update_data)
            trade.updated_at = datetime.utcnow()
            db.session.commit()
            logger.info(f"Updated trade {trade.id}")

            return {
                'success': True,
                'message': 'Trade updated successfully',
                'updated_at': trade.updated_at.isoformat()
            }

        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to update trade {trade_id}: {e}")
            return {'error': f'Failed to update trade: {str(e)}'}

    def delete_trade(self, trade_id) -> Dict:
        try:
            trade = self.get_trade(trade_id)
            if not trade:
                return {'error': 'Trade not found'}

            db.session.delete(trade)
            db.session.commit()
            logger.info(f"Deleted trade {trade_id}")
            return {'success': True, 'message': 'Trade deleted'}

        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to delete trade {trade_id}: {e}")
            return {'error': f'Failed to delete trade: {str(e)}'}

    def update_review(self, trade_id, review: Optional[str]) -> Dict:
        """Replace the post-trade review text (blank clears it)"""
        review = (review or '').strip()
        return self.update_trade(trade_id, {'entry_reason': review or None})

    def attach_screenshots(self, trade_id, urls: List[str]) -> Dict:
        """Merge new screenshot URLs into the trade's list"""
        trade = self.get_trade(trade_id)
        if not trade:
            return {'error': 'Trade not found'}
        merged = merge_screenshot_urls(trade.screenshot_url, urls)
        outcome = self.update_trade(trade_id, {'screenshot_url': merged or None})
        if 'error' not in outcome:
            outcome['screenshotUrl'] = merged
        return outcome

    def get_risk_inputs(self):
        """All trades, oldest first, as risk statistics input"""
        return [trade.to_risk_input() for trade in oldest_first(Trade.query).all()]

    def migrate_ids(self) -> Dict:
        """
        Re-key legacy trades with snowflake ids.

        Trades are re-keyed in entry-time order so the new ids stay
        chronological. Nothing happens when every id is already valid.
        """
        rows = db.session.query(Trade.id, Trade.entry_time).all()
        if not rows:
            return {'ok': True, 'updated': 0, 'message': 'No data to migrate.'}

        rows.sort(key=lambda row: (row.entry_time, _id_sort_key(row.id)))

        if all(is_valid_snowflake_id(row.id) for row in rows):
            return {
                'ok': True,
                'updated': 0,
                'message': 'All IDs are already 15-digit snowflake IDs.',
            }

        existing = {row.id for row in rows}
        generated = set()
        mapping = []
        for row in rows:
            next_id = generate_snowflake_id()
            while next_id in generated or next_id in existing:
                next_id = generate_snowflake_id()
            generated.add(next_id)
            mapping.append({'oldId': row.id, 'newId': next_id})

        try:
            for item in mapping:
                Trade.query.filter(Trade.id == item['oldId']).update(
                    {Trade.id: item['newId']}, synchronize_session=False
                )
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Trade id migration failed: {e}")
            raise

        logger.info(f"Migrated {len(mapping)} trade ids to snowflake ids")
        return {
            'ok': True,
            'updated': len(mapping),
            'first': mapping[0],
            'last': mapping[-1],
        }

    def get_trade_statistics(self) -> Dict:
        """Get trade statistics summary"""
        try:
            total_trades = Trade.query.count()
            winning_trades = Trade.query.filter(func.lower(Trade.result) == 'win').count()
            losing_trades = Trade.query.filter(func.lower(Trade.result) == 'loss').count()
            live_trades = Trade.query.filter(func.lower(Trade.trade_mode) == 'live').count()
            demo_trades = Trade.query.filter(func.lower(Trade.trade_mode) == 'demo').count()

            decided = winning_trades + losing_trades
            win_rate = (winning_trades / decided * 100) if decided > 0 else 0

            total_pnl = db.session.query(func.sum(Trade.pnl_amount)).scalar() or 0
            avg_pnl = db.session.query(func.avg(Trade.pnl_amount)).scalar() or 0
            avg_r_actual = db.session.query(func.avg(Trade.actual_r_multiple)).filter(
                Trade.actual_r_multiple.isnot(None)).scalar() or 0

            return {
                'total_trades': total_trades,
                'winning_trades': winning_trades,
                'losing_trades': losing_trades,
                'live_trades': live_trades,
                'demo_trades': demo_trades,
                'win_rate': round(win_rate, 2),
                'total_pnl': round(total_pnl, 2),
                'avg_pnl': round(avg_pnl, 2),
                'avg_r_actual': round(avg_r_actual, 2),
                'calculated_at': datetime.now().isoformat()
            }

        except Exception as e:
            logger.error(f"Failed to get trade statistics: {e}")
            return {'error': f'Failed to get trade statistics: {str(e)}'}

    def _apply(self, trade: Trade, data: Dict):
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(trade, field, data[field])
