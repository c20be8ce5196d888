"""
Delivery Worker - отправка наступивших уведомлений.

At-most-once: запись помечается sent после попытки отправки
независимо от результата. Записи с битым bounty_details сбрасываются,
чтобы не блокировать очередь. Между отправками пауза (лимит Telegram).
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from earn_notifier.models import utcnow
from earn_notifier.notifications.templates import render_notification, UnknownChangeTypeError

logger = logging.getLogger(__name__)


class DeliveryWorker:
    """Один проход по наступившим bounty_notifications."""

    def __init__(self, store, gateway, send_interval: float = 0.05):
        """
        Args:
            store: NotificationStore (get_due, mark_sent)
            gateway: Messaging gateway (send_message(recipient_id, text) -> bool)
            send_interval: Пауза между отправками (секунды)
        """
        self.store = store
        self.gateway = gateway
        self.send_interval = send_interval

    async def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Обработка всех наступивших записей, старшие первыми.

        Returns:
            Статистика прохода: sent, failed, dropped, skipped
        """
        now = now or utcnow()
        stats = {'sent': 0, 'failed': 0, 'dropped': 0, 'skipped': 0}

        due = await self.store.get_due(now)
        if not due:
            logger.debug("Нет уведомлений к отправке")
            return stats

        logger.info(f"📬 К отправке {len(due)} уведомлений")

        for index, notification in enumerate(due):
            notification_id = notification['id']
            recipient_id = notification.get('recipient_id')

            if recipient_id is None:
                logger.warning(
                    f"⚠️ Уведомление {notification_id}: получатель не найден, помечаем отправленным"
                )
                await self.store.mark_sent(notification_id)
                stats['dropped'] += 1
                continue

            try:
                text = render_notification(
                    notification['notification_type'],
                    notification['bounty_details'],
                    now=now
                )
            except UnknownChangeTypeError as e:
                logger.error(f"❌ Уведомление {notification_id} (листинг {notification['bounty_id']}): {e}")
                stats['skipped'] += 1
                continue
            except Exception as e:
                # Битый bounty_details: повтор даст ту же ошибку
                logger.error(
                    f"❌ Уведомление {notification_id}: не удалось сформировать текст ({e}), сбрасываем",
                    exc_info=True
                )
                await self.store.mark_sent(notification_id)
                stats['dropped'] += 1
                continue

            try:
                delivered = await self.gateway.send_message(recipient_id, text)
            except Exception as e:
                logger.error(f"❌ Ошибка gateway при отправке уведомления {notification_id}: {e}", exc_info=True)
                delivered = False

            await self.store.mark_sent(notification_id)

            if delivered:
                stats['sent'] += 1
            else:
                stats['failed'] += 1
                logger.warning(
                    f"⚠️ Уведомление {notification_id} не доставлено пользователю {recipient_id}, повтора не будет"
                )

            if index < len(due) - 1:
                await asyncio.sleep(self.send_interval)

        logger.info(
            f"📤 Доставка: отправлено {stats['sent']}, ошибок {stats['failed']}, "
            f"сброшено {stats['dropped']}, пропущено {stats['skipped']}"
        )
        return stats


__all__ = ['DeliveryWorker']
