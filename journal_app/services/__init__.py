"""
Service Layer for the Trade Journal

Keeps database access, statistics and external integrations (vision model,
blob store) out of the blueprints.
"""

from .trade_service import TradeService
from .stats_service import StatsService
from .chart_service import ChartService
from .image_parse_service import ImageParseService, ImageParseError
from .blob_service import BlobService, BlobStorageError
from .telegram_webhook_service import TelegramWebhookService

__all__ = [
    'TradeService', 'StatsService', 'ChartService',
    'ImageParseService', 'ImageParseError', 'BlobService', 'BlobStorageError', 'TelegramWebhookService',
]
