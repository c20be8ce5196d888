"""
Скрипт для ручной настройки подписчика (поддержка, отладка уведомлений).

Использование:
    # Создать подписчика и включить все уведомления по India/Backend:
    python scripts/set_preferences.py 123456789 --region INDIA --skills BACKEND DESIGN --type BOTH --setup

    # Порог вознаграждения:
    python scripts/set_preferences.py 123456789 --min-reward 500

    # Показать текущие настройки:
    python scripts/set_preferences.py 123456789 --show
"""

import asyncio
import sys
import argparse
from pathlib import Path

# Добавляем корень проекта в путь
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from pydantic import ValidationError

from database import init_database, close_database
from earn_notifier.database import SubscriberStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Настройки подписчика Earn Notifier')
    parser.add_argument('telegram_id', type=int, help='Telegram user ID')
    parser.add_argument('--username', help='Telegram username')
    parser.add_argument('--region', help='Регион (GLOBAL, INDIA, ...)')
    parser.add_argument('--skills', nargs='+', help='Навыки (ALL, BACKEND, ...)')
    parser.add_argument('--type', dest='notification_preferences', choices=['BOUNTY', 'PROJECT', 'BOTH', 'NONE'],
                        type=str.upper, help='Какие листинги присылать')
    parser.add_argument('--min-reward', dest='min_reward_ask', type=float, help='Минимальное вознаграждение')
    parser.add_argument('--setup', dest='setup', action='store_true', default=None, help='Отметить настройку завершённой')
    parser.add_argument('--no-setup', dest='setup', action='store_false', help='Сбросить флаг настройки')
    parser.add_argument('--show', action='store_true', help='Только показать настройки')
    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    await init_database()
    store = SubscriberStore()

    try:
        if not args.show:
            await store.upsert(args.telegram_id, username=args.username)

            fields = {
                name: getattr(args, name)
                for name in ('region', 'skills', 'notification_preferences', 'min_reward_ask', 'setup')
                if getattr(args, name) is not None
            }
            if fields:
                try:
                    await store.update_preferences(args.telegram_id, **fields)
                except ValidationError as e:
                    print(f"❌ Некорректные настройки:\n{e}")
                    return 1

        subscriber = await store.get_subscriber(args.telegram_id)
        if subscriber is None:
            print(f"❌ Подписчик {args.telegram_id} не найден")
            return 1

        print(f"👤 Подписчик {subscriber.id}")
        print(f"   Регион: {subscriber.region}")
        print(f"   Навыки: {', '.join(sorted(subscriber.skills)) or '-'}")
        print(f"   Уведомления: {subscriber.notification_preference.value}")
        print(f"   Мин. вознаграждение: {subscriber.min_reward_ask}")
        print(f"   Настройка завершена: {'да' if subscriber.setup else 'нет'}")
        return 0
    finally:
        await close_database()


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
