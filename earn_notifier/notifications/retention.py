"""Retention Sweeper: удаление отправленных уведомлений старше окна хранения."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from earn_notifier.models import utcnow

logger = logging.getLogger(__name__)


class RetentionSweeper:

    def __init__(self, store, retention_days: int = 7):
        self.store = store
        self.retention = timedelta(days=retention_days)

    async def run_once(self, now: Optional[datetime] = None) -> int:
        """Удаляет sent=true записи с created_at <= now - retention. Ошибки логируются, возвращается 0."""
        cutoff = (now or utcnow()) - self.retention

        try:
            count = await self.store.purge_sent_before(cutoff)
        except Exception as e:
            logger.error(f"❌ Ошибка очистки отправленных уведомлений: {e}", exc_info=True)
            return 0

        logger.info(f"🧹 Удалено {count} отправленных уведомлений (старше {cutoff:%Y-%m-%d %H:%M})")
        return count


__all__ = ['RetentionSweeper']
