"""
Telegram Notification Service для Earn Notifier.

Messaging gateway: отправляет готовый HTML-текст пользователю.
Ошибки доставки не пробрасываются вызывающему коду.
"""

import logging
from typing import Any, Dict, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """
    Отправка уведомлений в Telegram.

    Особенности:
    - HTML-разметка (<b>, <a href>)
    - Обработка ошибок (бот заблокирован, чат не найден)
    - Статистика отправок
    """

    def __init__(self, bot_token: Optional[str] = None, bot: Optional[Bot] = None):
        """
        Инициализация Telegram Notifier.

        Args:
            bot_token: Telegram Bot Token
            bot: Готовый экземпляр Bot (вместо токена)
        """
        if bot is None and not bot_token:
            raise ValueError("Нужен bot_token или bot")

        self.bot = bot or Bot(token=bot_token)

        self.stats = {
            'notifications_sent': 0,
            'notifications_failed': 0,
            'users_blocked_bot': 0,
        }

    async def send_message(self, recipient_id: int, text: str) -> bool:
        """
        Отправка сообщения.

        Returns:
            True если успешно отправлено
        """
        try:
            await self.bot.send_message(
                chat_id=recipient_id,
                text=text,
                parse_mode='HTML'
            )

            self.stats['notifications_sent'] += 1
            logger.info(f"✅ Уведомление отправлено пользователю {recipient_id}")
            return True

        except TelegramForbiddenError:
            logger.warning(f"⚠️ Пользователь {recipient_id} заблокировал бота")
            self.stats['users_blocked_bot'] += 1
            return False

        except TelegramBadRequest as e:
            logger.error(f"❌ Ошибка отправки пользователю {recipient_id}: {e}")
            self.stats['notifications_failed'] += 1
            return False

        except Exception as e:
            self.stats['notifications_failed'] += 1
            logger.error(f"❌ Неожиданная ошибка при отправке пользователю {recipient_id}: {e}", exc_info=True)
            return False

    def get_stats(self) -> Dict[str, Any]:
        """Получение статистики отправок."""
        return self.stats.copy()

    async def close(self):
        """Закрытие сессии бота."""
        await self.bot.session.close()
        logger.info("Telegram Notifier закрыт")


__all__ = ['TelegramNotifier']
