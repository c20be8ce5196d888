"""
Notifications

Планирование, шаблоны, доставка через Telegram и очистка старых записей.
"""

from .scheduler import NotificationScheduler
from .templates import render_notification, UnknownChangeTypeError
from .telegram_notifier import TelegramNotifier
from .delivery_worker import DeliveryWorker
from .retention import RetentionSweeper

__all__ = [
    'NotificationScheduler',
    'render_notification',
    'UnknownChangeTypeError',
    'TelegramNotifier',
    'DeliveryWorker',
    'RetentionSweeper',
]
