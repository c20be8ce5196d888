"""
Notification Scheduler - отложенные уведомления с дедупликацией.

Одна запись на (получатель, листинг, тип изменения). Пока запись ждёт
отправки (send_at = now + delay), повторные правки листинга не создают
новых уведомлений того же типа.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from earn_notifier.models import ChangeEvent, ChangeType, ListingType, Subscriber, utcnow

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Создание записей bounty_notifications."""

    def __init__(self, store, delay_seconds: float):
        """
        Args:
            store: NotificationStore (find_existing, create)
            delay_seconds: Задержка отправки
        """
        self.store = store
        self.delay = timedelta(seconds=delay_seconds)

        self.stats = {
            'scheduled': 0,
            'already_pending': 0,
            'already_sent': 0,
        }

    async def schedule(
        self,
        recipient_id: int,
        listing_id: str,
        payload: Dict[str, Any],
        change_type: Union[ChangeType, str],
        listing_type: Union[ListingType, str],
        now: Optional[datetime] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Планирование уведомления.

        Returns:
            Созданная запись или None, если такое уведомление уже есть
        """
        change_type = ChangeType(change_type).value
        listing_type = ListingType(listing_type).value

        existing = await self.store.find_existing(recipient_id, listing_id, change_type)
        if existing is not None:
            state = 'already_sent' if existing['sent'] else 'already_pending'
            self.stats[state] += 1
            logger.info(
                f"⏭️ {change_type} {listing_type} {listing_id} → {recipient_id}: "
                f"{'уже отправлено' if existing['sent'] else 'уже ожидает отправки'}"
            )
            return None

        send_at = (now or utcnow()) + self.delay
        notification = await self.store.create(
            telegram_user_id=recipient_id,
            bounty_id=listing_id,
            notification_type=change_type,
            bounty_details=payload,
            send_at=send_at
        )

        if notification is None:
            # Параллельная вставка опередила нас
            self.stats['already_pending'] += 1
            return None

        self.stats['scheduled'] += 1
        logger.info(
            f"🗓️ {change_type} {listing_type} {listing_id} → {recipient_id}, отправка в {send_at:%Y-%m-%d %H:%M:%S}"
        )
        return notification

    async def schedule_event(
        self,
        subscriber: Subscriber,
        event: ChangeEvent,
        now: Optional[datetime] = None
    ) -> Optional[Dict[str, Any]]:
        return await self.schedule(
            recipient_id=subscriber.id,
            listing_id=event.listing.id,
            payload=event.to_payload(),
            change_type=event.change_type,
            listing_type=event.listing.type,
            now=now
        )


__all__ = ['NotificationScheduler']
