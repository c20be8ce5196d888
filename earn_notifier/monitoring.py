"""
Sentry для Earn Notifier.

Ошибки периодических циклов (детекция, доставка, очистка) логируются
сервисом и, если задан SENTRY_DSN, уходят в Sentry с тегом цикла.
Без DSN все функции модуля ничего не делают.
"""

import os
import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

logger = logging.getLogger(__name__)

_sentry_enabled = False

# Сетевые сбои Telegram/Redis/БД, которые лечатся следующим циклом
TRANSIENT_ERROR_TYPES = frozenset({
    'TelegramNetworkError',
    'TelegramRetryAfter',
    'TimeoutError',
    'ConnectionResetError',
})

TRANSIENT_ERROR_MARKERS = (
    'timed out',
    'timeout',
    'connection reset',
    'connection refused',
    'too many requests',
    'flood control',
    'bad gateway',
    'service unavailable',
)


def init_sentry(
    dsn: Optional[str] = None,
    environment: str = "production",
    traces_sample_rate: float = 0.1
) -> bool:
    """
    Подключение Sentry.

    Args:
        dsn: DSN проекта (по умолчанию SENTRY_DSN из окружения)
        environment: APP_ENV сервиса
        traces_sample_rate: Доля транзакций для performance мониторинга

    Returns:
        True если Sentry включён
    """
    global _sentry_enabled

    if _sentry_enabled:
        return True

    sentry_dsn = dsn or os.getenv('SENTRY_DSN')
    if not sentry_dsn:
        logger.info("ℹ️ SENTRY_DSN не задан, отправка ошибок в Sentry выключена")
        return False

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            # breadcrumbs с INFO, события с ERROR
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            AioHttpIntegration(),
        ],
        attach_stacktrace=True,
        send_default_pii=False,
        max_breadcrumbs=50,
        before_send=_before_send_filter,
    )

    _sentry_enabled = True
    logger.info(f"✅ Sentry подключён ({environment})")
    return True


def _is_transient(error: BaseException) -> bool:
    if type(error).__name__ in TRANSIENT_ERROR_TYPES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def _before_send_filter(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Отбрасывает Ctrl+C и временные сетевые сбои."""
    exc_info = hint.get('exc_info')
    if not exc_info:
        return event

    error = exc_info[1]
    if isinstance(error, KeyboardInterrupt):
        return None
    if _is_transient(error):
        logger.debug(f"Sentry: пропускаем временный сбой {type(error).__name__}: {str(error)[:100]}")
        return None

    return event


def capture_exception(
    error: BaseException,
    level: str = "error",
    tags: Optional[Dict[str, str]] = None
) -> None:
    """
    Ручная отправка исключения (например, из цикла сервиса).

    Args:
        error: Пойманное исключение
        level: error / warning / fatal
        tags: Теги события, например {"cycle": "delivery"}
    """
    if not _sentry_enabled:
        return

    with sentry_sdk.push_scope() as scope:
        scope.level = level
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(error)


def flush_events(timeout: float = 2.0) -> None:
    """Дожидается отправки очереди событий (при остановке)."""
    if _sentry_enabled:
        sentry_sdk.flush(timeout=timeout)


__all__ = ['init_sentry', 'capture_exception', 'flush_events']
