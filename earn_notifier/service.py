"""
Earn Notifier Service - координатор пайплайна уведомлений.

Три независимых периодических цикла:
- детекция изменений (детектор → резолвер → планировщик)
- доставка наступивших уведомлений
- ежедневная очистка (в полночь UTC)

Ошибка одного цикла логируется и не останавливает ни его цикл, ни другие.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from earn_notifier.cache import SnapshotStore
from earn_notifier.config import NotifierConfig
from earn_notifier.detection import ChangeDetector
from earn_notifier.matching import RecipientResolver
from earn_notifier.models import utcnow
from earn_notifier.monitoring import capture_exception
from earn_notifier.notifications import DeliveryWorker, NotificationScheduler, RetentionSweeper

logger = logging.getLogger(__name__)


def seconds_until_midnight(now: Optional[datetime] = None) -> float:
    """Секунды до следующей полуночи UTC."""
    now = now or utcnow()
    next_midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (next_midnight - now).total_seconds()


class EarnNotifierService:
    """
    Главный сервис Earn Notifier.

    Компоненты внедряются снаружи (bot/main.py, тесты).
    """

    def __init__(
        self,
        config: NotifierConfig,
        repository,
        subscriber_store,
        notification_store,
        snapshot_store: SnapshotStore,
        gateway
    ):
        """
        Args:
            config: Конфигурация пайплайна
            repository: ListingRepository
            subscriber_store: SubscriberStore
            notification_store: NotificationStore
            snapshot_store: Хранилище снапшота
            gateway: Messaging gateway (TelegramNotifier)
        """
        self.config = config
        self.snapshot_store = snapshot_store
        self.gateway = gateway

        self.detector = ChangeDetector(repository, snapshot_store)
        self.resolver = RecipientResolver(subscriber_store)
        self.scheduler = NotificationScheduler(notification_store, config.notification_delay_seconds)
        self.worker = DeliveryWorker(notification_store, gateway, config.send_interval_seconds)
        self.sweeper = RetentionSweeper(notification_store, config.retention_days)
        self.subscriber_store = subscriber_store

        self._tasks: List[asyncio.Task] = []
        self.is_running = False

        self.stats = {
            'started_at': None,
            'detection_cycles': 0,
            'changes_detected': 0,
            'notifications_scheduled': 0,
            'notifications_sent': 0,
            'notifications_failed': 0,
            'notifications_dropped': 0,
            'notifications_purged': 0,
            'errors': 0,
        }

    # ============================================
    # ЦИКЛЫ
    # ============================================

    async def run_detection_cycle(self) -> int:
        """
        Детекция изменений и планирование уведомлений.

        Returns:
            Количество запланированных уведомлений
        """
        detected = await self.detector.detect()
        self.stats['detection_cycles'] += 1

        if detected is None:
            return 0

        events, current = detected
        if not events:
            await self.detector.commit(current)
            return 0

        self.stats['changes_detected'] += len(events)

        # Кандидаты читаются один раз за цикл
        candidates = await self.subscriber_store.get_notifiable_subscribers()
        scheduled = 0

        for event in events:
            recipients = await self.resolver.resolve(event, candidates=candidates)
            for subscriber in recipients:
                if await self.scheduler.schedule_event(subscriber, event) is not None:
                    scheduled += 1

        # Снапшот сдвигается только после планирования всех событий;
        # при ошибке выше следующий цикл повторит их (дубли отсекает планировщик)
        await self.detector.commit(current)

        self.stats['notifications_scheduled'] += scheduled
        logger.info(f"🗓️ Запланировано {scheduled} уведомлений по {len(events)} изменениям")
        return scheduled

    async def run_delivery_cycle(self) -> Dict[str, int]:
        result = await self.worker.run_once()
        self.stats['notifications_sent'] += result['sent']
        self.stats['notifications_failed'] += result['failed']
        self.stats['notifications_dropped'] += result['dropped']
        return result

    async def run_retention_cycle(self) -> int:
        purged = await self.sweeper.run_once()
        self.stats['notifications_purged'] += purged
        return purged

    # ============================================
    # ЗАПУСК / ОСТАНОВКА
    # ============================================

    async def start(self):
        """Запуск трёх периодических циклов (не блокирует)."""
        if self.is_running:
            logger.warning("Сервис уже запущен")
            return

        self.is_running = True
        self.stats['started_at'] = datetime.now()

        logger.info("=" * 70)
        logger.info("🎯 ЗАПУСК EARN NOTIFIER")
        logger.info("=" * 70)
        logger.info(f"   Профиль: {self.config.profile}")
        logger.info(f"   Задержка отправки: {self.config.notification_delay_seconds}s")
        logger.info(f"   Детекция: каждые {self.config.detection_interval_seconds}s")
        logger.info(f"   Доставка: каждые {self.config.delivery_interval_seconds}s")
        logger.info(f"   Очистка: ежедневно в 00:00 UTC, окно {self.config.retention_days} дней")

        if self.config.snapshot_warmup:
            await self.detector.warm_up()

        self._tasks = [
            asyncio.create_task(
                self._run_periodic('detection', self.run_detection_cycle, self._fixed_interval(self.config.detection_interval_seconds)),
                name='earn-detection'
            ),
            asyncio.create_task(
                self._run_periodic('delivery', self.run_delivery_cycle, self._fixed_interval(self.config.delivery_interval_seconds)),
                name='earn-delivery'
            ),
            asyncio.create_task(
                self._run_periodic('retention', self.run_retention_cycle, seconds_until_midnight, run_first=False),
                name='earn-retention'
            ),
        ]

    async def stop(self):
        """Остановка циклов и закрытие gateway/снапшота."""
        logger.info("🛑 Остановка Earn Notifier...")
        self.is_running = False

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await self.gateway.close()
        await self.snapshot_store.close()

        self._print_stats()

    @staticmethod
    def _fixed_interval(seconds: float) -> Callable[[], float]:
        return lambda: seconds

    async def _run_periodic(
        self,
        name: str,
        cycle: Callable[[], Awaitable[Any]],
        next_delay: Callable[[], float],
        run_first: bool = True
    ):
        """Цикл: выполнить → подождать; ошибки логируются и не прерывают цикл."""
        if not run_first:
            await asyncio.sleep(next_delay())

        while self.is_running:
            try:
                await cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats['errors'] += 1
                logger.error(f"❌ Ошибка цикла {name}: {e}", exc_info=True)
                capture_exception(e, tags={'component': name})

            await asyncio.sleep(next_delay())

    # ============================================
    # СТАТИСТИКА
    # ============================================

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['scheduler'] = self.scheduler.stats.copy()
        if hasattr(self.gateway, 'get_stats'):
            stats['gateway'] = self.gateway.get_stats()
        return stats

    def _print_stats(self):
        """Вывод статистики работы сервиса."""
        logger.info("=" * 70)
        logger.info("📊 СТАТИСТИКА EARN NOTIFIER")
        logger.info("=" * 70)

        if self.stats['started_at']:
            uptime = datetime.now() - self.stats['started_at']
            logger.info(f"⏱️  Время работы: {uptime}")

        logger.info(f"🔎 Циклов детекции: {self.stats['detection_cycles']}")
        logger.info(f"📝 Изменений: {self.stats['changes_detected']}")
        logger.info(f"🗓️ Запланировано: {self.stats['notifications_scheduled']}")
        logger.info(f"📱 Отправлено: {self.stats['notifications_sent']}")
        logger.info(f"⚠️ Не доставлено: {self.stats['notifications_failed']}")
        logger.info(f"🗑️ Сброшено: {self.stats['notifications_dropped']}")
        logger.info(f"🧹 Удалено старых: {self.stats['notifications_purged']}")
        logger.info(f"❌ Ошибок: {self.stats['errors']}")
        logger.info("=" * 70)


__all__ = ['EarnNotifierService', 'seconds_until_midnight']
