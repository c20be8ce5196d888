"""
Earn Notifier - уведомления о листингах Superteam Earn в Telegram.

Components:
- cache.py         - снапшот листингов (in-memory / Redis)
- detection/       - детектор изменений (новые, регион, дедлайн)
- matching/        - фильтры получателей
- notifications/   - планировщик, шаблоны, доставка, очистка
- database/        - адаптеры SQLAlchemy (листинги, подписчики, уведомления)
- service.py       - координатор периодических циклов

Quick Start:
    from earn_notifier.config import NotifierConfig
    from earn_notifier.service import EarnNotifierService

    config = NotifierConfig.from_env()
    service = EarnNotifierService(config, repository, subscribers, notifications, snapshot, notifier)
    await service.start()

Запуск процесса: python -m bot.main
"""
