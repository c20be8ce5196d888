"""
Главный файл процесса Earn Notifier.

Запуск: python -m bot.main
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

# Добавляем родительскую директорию в путь для импорта модулей системы
sys.path.insert(0, str(Path(__file__).parent.parent))

from aiogram import Bot

from bot.config import BotConfig
from bot.env_validator import EnvValidator
from bot.health_check import start_health_check_server
from bot.logger import auto_setup_logging
from database import init_database, close_database

from earn_notifier.cache import create_snapshot_store
from earn_notifier.config import NotifierConfig
from earn_notifier.database import ListingRepository, SubscriberStore, NotificationStore
from earn_notifier.monitoring import init_sentry, capture_exception, flush_events
from earn_notifier.notifications import TelegramNotifier
from earn_notifier.service import EarnNotifierService

logger = logging.getLogger(__name__)


def _install_signal_handlers(stop_event: asyncio.Event):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: остановка через KeyboardInterrupt
            pass


async def main():
    """Главная функция запуска."""
    auto_setup_logging()

    # ============================================
    # PRODUCTION: Валидация окружения
    # ============================================
    logger.info("🔍 Проверка переменных окружения...")
    EnvValidator.validate_and_exit_if_invalid(strict=False)

    try:
        BotConfig.validate()
        config = NotifierConfig.from_env(profile=BotConfig.APP_ENV)
        logger.info("✅ Конфигурация валидна")
    except ValueError as e:
        logger.error(f"❌ Ошибка конфигурации: {e}")
        capture_exception(e, level="fatal", tags={"component": "config"})
        return

    sentry_enabled = init_sentry(
        dsn=BotConfig.SENTRY_DSN or None,
        environment=config.profile,
        traces_sample_rate=0.1
    )
    if sentry_enabled:
        logger.info("✅ Sentry мониторинг активирован")
    else:
        logger.info("ℹ️  Sentry мониторинг отключен (SENTRY_DSN не указан)")

    logger.info("🗄️  Инициализация базы данных...")
    await init_database(BotConfig.DATABASE_URL or None)

    snapshot_store = create_snapshot_store(config.redis_url)
    notifier = TelegramNotifier(bot=Bot(token=BotConfig.BOT_TOKEN))

    service = EarnNotifierService(
        config=config,
        repository=ListingRepository(config),
        subscriber_store=SubscriberStore(),
        notification_store=NotificationStore(),
        snapshot_store=snapshot_store,
        gateway=notifier
    )

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    health_check_runner = None
    try:
        await service.start()

        logger.info(f"🏥 Запуск health check сервера на порту {BotConfig.HEALTH_CHECK_PORT}...")
        health_check_runner = await start_health_check_server(
            port=BotConfig.HEALTH_CHECK_PORT,
            service=service
        )

        logger.info("✅ Earn Notifier запущен")
        await stop_event.wait()

    except Exception as e:
        logger.error(f"❌ Ошибка при работе сервиса: {e}", exc_info=True)
        capture_exception(e, level="fatal", tags={"component": "main"})
    finally:
        await service.stop()

        if health_check_runner:
            logger.info("🛑 Остановка health check сервера...")
            await health_check_runner.cleanup()

        await close_database()

        # Отправляем все накопленные события в Sentry перед завершением
        flush_events(timeout=2)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Earn Notifier остановлен пользователем")
