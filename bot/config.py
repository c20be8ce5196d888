"""
Конфигурация процесса бота.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Загружаем переменные окружения из .env (только для локального запуска)
# В Railway переменные окружения уже установлены в системе
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


class BotConfig:
    """Конфигурация бота."""

    # Telegram Bot Token
    BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN', '')

    # База данных Earn (листинги) и таблицы бота
    DATABASE_URL = os.getenv('DATABASE_URL', '')

    # Окружение: development, test, production
    APP_ENV = os.getenv('APP_ENV', 'development')

    # Health check сервер (0 = выключен)
    HEALTH_CHECK_PORT = int(os.getenv('HEALTH_CHECK_PORT', '8080') or 0)

    # Sentry (опционально)
    SENTRY_DSN = os.getenv('SENTRY_DSN', '')

    @classmethod
    def validate(cls):
        """Проверяет, что все необходимые настройки заданы."""
        errors = []

        if not cls.BOT_TOKEN:
            errors.append("TELEGRAM_BOT_TOKEN не задан")

        if cls.APP_ENV not in ('development', 'test', 'production'):
            errors.append(f"APP_ENV={cls.APP_ENV} (ожидается development, test или production)")

        if cls.APP_ENV == 'production' and not cls.DATABASE_URL:
            errors.append("DATABASE_URL не задан (в production SQLite fallback не используется)")

        if errors:
            raise ValueError("Ошибки конфигурации:\n" + "\n".join(f"  - {e}" for e in errors))

        return True
