"""
Recipient Resolver - кому отправлять событие изменения.

Фильтры применяются по порядку, все должны пройти:
1. тип листинга vs preference подписчика
2. регион (совпадает или листинг GLOBAL)
3. навыки (у подписчика ALL или пересечение непустое)
4. минимальное вознаграждение (0 или effective payout >= порога)
"""

import logging
from typing import List, Optional, Sequence

from earn_notifier.models import (
    ChangeEvent,
    Listing,
    ListingType,
    NotificationPreference,
    NOTIFIABLE_LISTING_TYPES,
    Subscriber,
)
from earn_notifier.regions import ALL_SKILLS, GLOBAL_REGION

logger = logging.getLogger(__name__)

# Preference → типы листингов, которые подписчик получает
PREFERENCE_TYPES = {
    NotificationPreference.BOUNTY: {ListingType.BOUNTY},
    NotificationPreference.PROJECT: {ListingType.PROJECT},
    NotificationPreference.BOTH: set(NOTIFIABLE_LISTING_TYPES),
    NotificationPreference.NONE: set(),
}


def match_subscriber(subscriber: Subscriber, listing: Listing) -> Optional[str]:
    """
    Проверка подписчика против листинга.

    Returns:
        Причина отказа или None, если подписчик подходит
    """
    if not subscriber.setup:
        return 'setup'

    # 1. Тип
    if listing.type not in PREFERENCE_TYPES[subscriber.notification_preference]:
        return 'type'

    # 2. Регион: wildcard только со стороны листинга
    if listing.region != GLOBAL_REGION and subscriber.region != listing.region:
        return 'region'

    # 3. Навыки
    if ALL_SKILLS not in subscriber.skills and not subscriber.skills.intersection(listing.skills_needed):
        return 'skills'

    # 4. Вознаграждение
    if subscriber.min_reward_ask > 0:
        payout = listing.effective_payout
        if payout is None or payout < subscriber.min_reward_ask:
            return 'reward'

    return None


class RecipientResolver:
    """Получатели события среди подписчиков с завершённой настройкой."""

    def __init__(self, subscriber_store):
        """
        Args:
            subscriber_store: SubscriberStore (get_notifiable_subscribers)
        """
        self.subscriber_store = subscriber_store

    async def resolve(
        self,
        event: ChangeEvent,
        candidates: Optional[Sequence[Subscriber]] = None
    ) -> List[Subscriber]:
        """
        Подходящие подписчики для события.

        Args:
            event: Событие изменения
            candidates: Кандидаты (по умолчанию все notifiable подписчики)
        """
        if candidates is None:
            candidates = await self.subscriber_store.get_notifiable_subscribers()

        listing = event.listing
        recipients = []
        rejected = {}

        for subscriber in candidates:
            reason = match_subscriber(subscriber, listing)
            if reason is None:
                recipients.append(subscriber)
            else:
                rejected[reason] = rejected.get(reason, 0) + 1

        logger.debug(
            f"{event.change_type.value} {listing.id}: {len(recipients)} получателей, "
            f"отсеяно {rejected or 0}"
        )
        return recipients


__all__ = ['RecipientResolver', 'match_subscriber', 'PREFERENCE_TYPES']
