"""
Database adapters for Earn Notifier.

Example usage:
    from earn_notifier.database import SubscriberStore

    store = SubscriberStore()
    await store.upsert(telegram_id=123456789, username='user')
    await store.update_preferences(
        123456789,
        region='INDIA',
        skills=['BACKEND'],
        notification_preferences='BOTH',
        setup=True
    )
"""

from .sqlalchemy_adapter import ListingRepository, SubscriberStore, NotificationStore

__all__ = [
    'ListingRepository',
    'SubscriberStore',
    'NotificationStore',
]
