"""
Доменные модели Earn Notifier.

Листинги, подписчики и события изменений, которыми обмениваются
детектор, резолвер получателей, планировщик и воркер доставки.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Union

from earn_notifier.regions import (
    GLOBAL_REGION,
    normalize_region,
    normalize_skills,
)


class ListingType(str, Enum):
    """Тип листинга Earn."""
    BOUNTY = "bounty"
    PROJECT = "project"
    HACKATHON = "hackathon"


# Хакатоны в пайплайн уведомлений не попадают
NOTIFIABLE_LISTING_TYPES = (ListingType.BOUNTY, ListingType.PROJECT)


class CompensationType(str, Enum):
    """Тип вознаграждения."""
    FIXED = "fixed"
    RANGE = "range"
    VARIABLE = "variable"


class NotificationPreference(str, Enum):
    """Какие листинги хочет получать подписчик."""
    BOUNTY = "BOUNTY"
    PROJECT = "PROJECT"
    BOTH = "BOTH"
    NONE = "NONE"


class ChangeType(str, Enum):
    """Тип изменения (хранится в bounty_notifications.notification_type)."""
    NEW_LISTING = "NEW_LISTING"
    REGION_UPDATED = "REGION_UPDATED"
    DEADLINE_UPDATED = "DEADLINE_UPDATED"


def serialize_for_json(obj: Any) -> Any:
    """Рекурсивная сериализация для JSON."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, dict):
        return {k: serialize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    return obj


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO строка / datetime → naive UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if dt.tzinfo is not None:
        # Колонки без timezone: приводим к UTC и убираем tzinfo
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


@dataclass(frozen=True)
class Listing:
    """Опубликованный активный листинг (bounty или project)."""

    id: str
    name: str
    link: str
    slug: str
    sponsor_name: str
    type: ListingType
    region: str = GLOBAL_REGION
    deadline: Optional[datetime] = None
    payout: Optional[float] = None
    token: Optional[str] = None
    min_reward_ask: Optional[float] = None
    max_reward_ask: Optional[float] = None
    compensation_type: CompensationType = CompensationType.FIXED
    skills_needed: Tuple[str, ...] = ()

    @property
    def effective_payout(self) -> Optional[float]:
        """
        Сумма для сравнения с порогом подписчика.

        fixed → payout; range/variable → нижняя граница (min_reward_ask).
        """
        if self.compensation_type == CompensationType.FIXED:
            return self.payout
        return self.min_reward_ask

    def to_payload(self) -> Dict[str, Any]:
        """JSON-представление листинга для bounty_details."""
        return serialize_for_json({
            'id': self.id,
            'name': self.name,
            'link': self.link,
            'slug': self.slug,
            'sponsor_name': self.sponsor_name,
            'type': self.type,
            'region': self.region,
            'deadline': self.deadline,
            'payout': self.payout,
            'token': self.token,
            'min_reward_ask': self.min_reward_ask,
            'max_reward_ask': self.max_reward_ask,
            'compensation_type': self.compensation_type,
            'skills_needed': list(self.skills_needed),
        })

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Listing':
        """Восстановление листинга из bounty_details (с канонизацией)."""
        return cls(
            id=str(payload['id']),
            name=payload.get('name') or '',
            link=payload.get('link') or '',
            slug=payload.get('slug') or '',
            sponsor_name=payload.get('sponsor_name') or '',
            type=ListingType(str(payload.get('type', 'bounty')).lower()),
            region=normalize_region(payload.get('region')),
            deadline=parse_datetime(payload.get('deadline')),
            payout=_to_float(payload.get('payout')),
            token=payload.get('token'),
            min_reward_ask=_to_float(payload.get('min_reward_ask')),
            max_reward_ask=_to_float(payload.get('max_reward_ask')),
            compensation_type=CompensationType(str(payload.get('compensation_type') or 'fixed').lower()),
            skills_needed=normalize_skills(payload.get('skills_needed')),
        )


@dataclass(frozen=True)
class Subscriber:
    """Подписчик с настройками уведомлений (только чтение)."""

    id: int
    region: str = GLOBAL_REGION
    skills: FrozenSet[str] = field(default_factory=frozenset)
    notification_preference: NotificationPreference = NotificationPreference.NONE
    min_reward_ask: float = 0
    setup: bool = False


# ============================================
# СОБЫТИЯ ИЗМЕНЕНИЙ
# ============================================

@dataclass(frozen=True)
class NewListing:
    """Листинг, которого не было в снапшоте."""

    listing: Listing
    change_type: ClassVar[ChangeType] = ChangeType.NEW_LISTING

    def to_payload(self) -> Dict[str, Any]:
        return self.listing.to_payload()


@dataclass(frozen=True)
class RegionChanged:
    """У листинга сменился регион."""

    listing: Listing
    old_region: str
    change_type: ClassVar[ChangeType] = ChangeType.REGION_UPDATED

    def to_payload(self) -> Dict[str, Any]:
        payload = self.listing.to_payload()
        payload['old_region'] = self.old_region
        return payload


@dataclass(frozen=True)
class DeadlineChanged:
    """У листинга сменился дедлайн."""

    listing: Listing
    old_deadline: Optional[datetime]
    change_type: ClassVar[ChangeType] = ChangeType.DEADLINE_UPDATED

    def to_payload(self) -> Dict[str, Any]:
        payload = self.listing.to_payload()
        payload['old_deadline'] = serialize_for_json(self.old_deadline)
        return payload


ChangeEvent = Union[NewListing, RegionChanged, DeadlineChanged]


__all__ = [
    'ListingType',
    'NOTIFIABLE_LISTING_TYPES',
    'CompensationType',
    'NotificationPreference',
    'ChangeType',
    'Listing',
    'Subscriber',
    'NewListing',
    'RegionChanged',
    'DeadlineChanged',
    'ChangeEvent',
    'serialize_for_json',
    'parse_datetime',
    'utcnow',
]
