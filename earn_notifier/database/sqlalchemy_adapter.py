"""
SQLAlchemy adapter для earn_notifier/database.

Обертка над unified database.py: листинги маркетплейса (только чтение),
подписчики и отложенные уведомления.
"""

import logging
from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError

# Импортируем из unified database
from database import (
    Sponsor as SponsorModel,
    Listing as ListingModel,
    TelegramUser as TelegramUserModel,
    BountyNotification as BountyNotificationModel,
    DatabaseSession,
    utcnow,
)
from earn_notifier.config import NotifierConfig
from earn_notifier.models import (
    CompensationType,
    Listing,
    ListingType,
    NotificationPreference,
    NOTIFIABLE_LISTING_TYPES,
    Subscriber,
    parse_datetime,
    serialize_for_json,
)
from earn_notifier.regions import ALL_SKILLS, normalize_region, normalize_skills
from earn_notifier.retry import retry_with_backoff, RetryConfig
from earn_notifier.schemas import SubscriberPreferencesUpdate

logger = logging.getLogger(__name__)

OPEN_STATUS = 'OPEN'


# ============================================
# LISTINGS
# ============================================

class ListingRepository:
    """
    Выборка листингов Earn для детектора изменений.

    Только опубликованные, активные, открытые, с дедлайном в будущем
    и notifiable-типа (bounty/project). Хакатоны сюда не попадают.
    """

    def __init__(self, config: Optional[NotifierConfig] = None):
        self.config = config or NotifierConfig()

    @retry_with_backoff(
        max_attempts=lambda self: self.config.fetch_retry_attempts,
        initial_delay=RetryConfig.DB_INITIAL_DELAY,
        backoff_factor=RetryConfig.DB_BACKOFF_FACTOR,
        exceptions=RetryConfig.DB_EXCEPTIONS
    )
    async def fetch_eligible_listings(self, now: Optional[datetime] = None) -> List[Listing]:
        """Текущий набор листингов (канонизированный)."""
        now = now or utcnow()
        listing_types = [listing_type.value for listing_type in NOTIFIABLE_LISTING_TYPES]

        async with DatabaseSession() as session:
            result = await session.execute(
                select(ListingModel, SponsorModel.name)
                .join(SponsorModel, ListingModel.sponsor_id == SponsorModel.id)
                .where(
                    ListingModel.is_published.is_(True),
                    ListingModel.is_active.is_(True),
                    ListingModel.deadline >= now,
                    ListingModel.status == OPEN_STATUS,
                    func.lower(ListingModel.type).in_(listing_types)
                )
                .order_by(ListingModel.id)
            )
            rows = result.all()

        listings = [self._to_listing(row, sponsor_name) for row, sponsor_name in rows]
        logger.info(f"📥 Получено {len(listings)} опубликованных активных листингов")
        return listings

    def _to_listing(self, row: ListingModel, sponsor_name: str) -> Listing:
        return Listing(
            id=str(row.id),
            name=row.title,
            link=self.config.listing_url_template.format(slug=row.slug),
            slug=row.slug,
            sponsor_name=sponsor_name or '',
            type=ListingType(row.type.lower()),
            region=normalize_region(row.region),
            deadline=parse_datetime(row.deadline),
            payout=row.reward_amount,
            token=row.token,
            min_reward_ask=row.min_reward_ask,
            max_reward_ask=row.max_reward_ask,
            compensation_type=CompensationType((row.compensation_type or 'fixed').lower()),
            skills_needed=normalize_skills(row.skills),
        )


# ============================================
# SUBSCRIBERS
# ============================================

def _parse_preference(value: Optional[str]) -> NotificationPreference:
    try:
        return NotificationPreference((value or 'NONE').strip().upper())
    except ValueError:
        logger.warning(f"⚠️ Неизвестная notification_preferences: {value!r}, считаем NONE")
        return NotificationPreference.NONE


def _to_subscriber(user: TelegramUserModel) -> Subscriber:
    return Subscriber(
        id=user.id,
        region=normalize_region(user.region),
        skills=frozenset(normalize_skills(user.skills)),
        notification_preference=_parse_preference(user.notification_preferences),
        min_reward_ask=user.min_reward_ask or 0,
        setup=bool(user.setup),
    )


class SubscriberStore:
    """Профили подписчиков (telegram_users)."""

    async def upsert(self, telegram_id: int, username: Optional[str] = None) -> Subscriber:
        """Создание подписчика с настройками по умолчанию или обновление username."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(TelegramUserModel).where(TelegramUserModel.id == telegram_id)
            )
            user = result.scalar_one_or_none()

            if user:
                if username is not None:
                    user.username = username
                return _to_subscriber(user)

            user = TelegramUserModel(
                id=telegram_id,
                username=username,
                region='GLOBAL',
                skills=[ALL_SKILLS],
                notification_preferences=NotificationPreference.NONE.value,
                min_reward_ask=0,
                setup=False
            )
            session.add(user)
            await session.flush()
            logger.info(f"👤 Новый подписчик {telegram_id} создан")
            return _to_subscriber(user)

    async def update_preferences(self, telegram_id: int, **fields) -> bool:
        """
        Обновление отдельных полей настроек.

        Raises:
            pydantic.ValidationError: некорректные значения
        """
        values = SubscriberPreferencesUpdate(**fields).changed_fields()
        if not values:
            return False

        async with DatabaseSession() as session:
            result = await session.execute(
                update(TelegramUserModel)
                .where(TelegramUserModel.id == telegram_id)
                .values(**values, updated_at=utcnow())
            )
            updated = result.rowcount > 0

        if updated:
            logger.info(f"⚙️ Подписчик {telegram_id}: обновлены {', '.join(sorted(values))}")
        else:
            logger.warning(f"⚠️ Подписчик {telegram_id} не найден")
        return updated

    async def get_subscriber(self, telegram_id: int) -> Optional[Subscriber]:
        async with DatabaseSession() as session:
            result = await session.execute(
                select(TelegramUserModel).where(TelegramUserModel.id == telegram_id)
            )
            user = result.scalar_one_or_none()
            return _to_subscriber(user) if user else None

    async def get_notifiable_subscribers(self) -> List[Subscriber]:
        """Подписчики с завершённой настройкой и preference != NONE."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(TelegramUserModel)
                .where(
                    TelegramUserModel.setup.is_(True),
                    func.upper(TelegramUserModel.notification_preferences) != NotificationPreference.NONE.value
                )
                .order_by(TelegramUserModel.id)
            )
            return [_to_subscriber(user) for user in result.scalars().all()]


# ============================================
# NOTIFICATIONS
# ============================================

def _notification_to_dict(notification: BountyNotificationModel) -> Dict[str, Any]:
    return {
        'id': notification.id,
        'telegram_user_id': notification.telegram_user_id,
        'bounty_id': notification.bounty_id,
        'notification_type': notification.notification_type,
        'bounty_details': notification.bounty_details,
        'send_at': notification.send_at,
        'sent': notification.sent,
        'created_at': notification.created_at,
    }


class NotificationStore:
    """Отложенные уведомления (bounty_notifications)."""

    async def find_existing(
        self,
        telegram_user_id: int,
        bounty_id: str,
        notification_type: str
    ) -> Optional[Dict[str, Any]]:
        """Запись для тройки (пользователь, листинг, тип) в любом состоянии sent."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(BountyNotificationModel)
                .where(
                    BountyNotificationModel.telegram_user_id == telegram_user_id,
                    BountyNotificationModel.bounty_id == bounty_id,
                    BountyNotificationModel.notification_type == notification_type
                )
                .order_by(BountyNotificationModel.sent)
                .limit(1)
            )
            notification = result.scalar_one_or_none()
            return _notification_to_dict(notification) if notification else None

    async def create(
        self,
        telegram_user_id: int,
        bounty_id: str,
        notification_type: str,
        bounty_details: Dict[str, Any],
        send_at: datetime
    ) -> Optional[Dict[str, Any]]:
        """
        Создание неотправленной записи.

        Returns:
            Запись или None, если такая уже есть (уникальный индекс)
        """
        async with DatabaseSession() as session:
            notification = BountyNotificationModel(
                telegram_user_id=telegram_user_id,
                bounty_id=bounty_id,
                notification_type=notification_type,
                bounty_details=serialize_for_json(bounty_details),
                send_at=send_at,
                sent=False,
                created_at=utcnow()
            )
            session.add(notification)
            try:
                await session.flush()
            except IntegrityError:
                await session.rollback()
                logger.info(
                    f"⏭️ Уведомление {notification_type} для {telegram_user_id}/{bounty_id} "
                    f"уже запланировано (unique constraint)"
                )
                return None

            return _notification_to_dict(notification)

    async def get_due(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Неотправленные записи с send_at <= now, старшие первыми.

        recipient_id = None если пользователь не найден.
        """
        now = now or utcnow()

        async with DatabaseSession() as session:
            result = await session.execute(
                select(BountyNotificationModel, TelegramUserModel.id)
                .outerjoin(TelegramUserModel, BountyNotificationModel.telegram_user_id == TelegramUserModel.id)
                .where(
                    BountyNotificationModel.sent.is_(False),
                    BountyNotificationModel.send_at <= now
                )
                .order_by(BountyNotificationModel.send_at, BountyNotificationModel.id)
            )

            due = []
            for notification, recipient_id in result.all():
                item = _notification_to_dict(notification)
                item['recipient_id'] = recipient_id
                due.append(item)
            return due

    async def mark_sent(self, notification_id: int) -> bool:
        async with DatabaseSession() as session:
            result = await session.execute(
                update(BountyNotificationModel)
                .where(BountyNotificationModel.id == notification_id)
                .values(sent=True)
            )
            return result.rowcount > 0

    async def purge_sent_before(self, cutoff: datetime) -> int:
        """Удаление отправленных записей с created_at <= cutoff."""
        async with DatabaseSession() as session:
            result = await session.execute(
                delete(BountyNotificationModel)
                .where(
                    BountyNotificationModel.sent.is_(True),
                    BountyNotificationModel.created_at <= cutoff
                )
            )
            return result.rowcount or 0


__all__ = [
    'ListingRepository',
    'SubscriberStore',
    'NotificationStore',
]
