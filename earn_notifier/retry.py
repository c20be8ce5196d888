"""
Повторные попытки с экспоненциальной паузой.

Применяется к выборке листингов: временный сбой БД повторяется
несколько раз, после последней попытки исключение уходит наверх
и цикл детекции пропускается целиком (снапшот не трогаем).
"""

import asyncio
import logging
from functools import wraps
from typing import Awaitable, Callable, Optional, Tuple, Type, Union

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

AttemptsSource = Union[int, Callable[..., int]]


def retry_with_backoff(
    max_attempts: AttemptsSource = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None
):
    """
    Декоратор async-функции: повтор при перечисленных исключениях.

    Args:
        max_attempts: Число попыток. Может быть функцией от self,
            тогда значение берётся из конфигурации экземпляра
        initial_delay: Пауза перед второй попыткой (сек)
        backoff_factor: Множитель паузы для следующих попыток
        exceptions: Какие исключения считаются временными
        on_retry: callback(attempt, error, delay) перед каждой паузой

    Паузы при max_attempts=3, initial_delay=2: 0 → 2s → 4s.
    """
    def decorator(func: Callable[..., Awaitable]):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            total = max_attempts(*args) if callable(max_attempts) else max_attempts
            total = max(1, int(total))
            pause = initial_delay
            attempt = 1

            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as error:
                    if attempt >= total:
                        logger.error(f"❌ {func.__name__}: все {total} попыток неудачны: {error}")
                        raise

                    logger.warning(
                        f"🔁 {func.__name__}: попытка {attempt}/{total} не удалась ({error}), "
                        f"повтор через {pause:.1f}s"
                    )
                    if on_retry is not None:
                        try:
                            on_retry(attempt, error, pause)
                        except Exception as callback_error:
                            logger.warning(f"⚠️ on_retry упал: {callback_error}")

                    await asyncio.sleep(pause)
                    pause *= backoff_factor
                    attempt += 1

        return wrapper
    return decorator


class RetryConfig:
    """Параметры повторов для запросов к БД Earn."""

    DB_INITIAL_DELAY = 2.0
    DB_BACKOFF_FACTOR = 2.0
    DB_EXCEPTIONS = (
        OperationalError,
        DBAPIError,
        asyncio.TimeoutError,
        ConnectionError,
    )


__all__ = ['retry_with_backoff', 'RetryConfig']
