"""
Pydantic schemas для валидации настроек подписчика.

Все значения приводятся к каноническим формам (регион, навыки)
до записи в telegram_users.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
import logging

from earn_notifier.models import NotificationPreference
from earn_notifier.regions import (
    ALL_SKILLS,
    SKILLS,
    is_known_region,
    normalize_region,
    normalize_skills,
)

logger = logging.getLogger(__name__)


class SubscriberPreferencesUpdate(BaseModel):
    """Частичное обновление настроек подписчика (None = не менять)."""

    region: Optional[str] = Field(
        None,
        max_length=50,
        description="Регион (GLOBAL = любой)"
    )
    skills: Optional[List[str]] = Field(
        None,
        min_length=1,
        max_length=len(SKILLS),
        description="Навыки (ALL = любые)"
    )
    notification_preferences: Optional[NotificationPreference] = Field(
        None,
        description="Какие листинги присылать"
    )
    min_reward_ask: Optional[float] = Field(
        None,
        ge=0,
        le=10_000_000,
        description="Минимальное вознаграждение (0 = любое)"
    )
    setup: Optional[bool] = Field(
        None,
        description="Настройка завершена"
    )

    @field_validator('region')
    @classmethod
    def validate_region(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        region = normalize_region(v)
        if not is_known_region(region):
            raise ValueError(f"Неизвестный регион: {v}")
        return region

    @field_validator('skills')
    @classmethod
    def validate_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v

        skills = list(normalize_skills(v))
        unknown = [skill for skill in skills if skill not in SKILLS]
        if unknown:
            raise ValueError(f"Неизвестные навыки: {', '.join(unknown)}")
        if not skills:
            raise ValueError("Нужен хотя бы один навык")

        # ALL поглощает остальные навыки
        if ALL_SKILLS in skills:
            return [ALL_SKILLS]
        return skills

    @field_validator('notification_preferences', mode='before')
    @classmethod
    def normalize_preference(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def changed_fields(self) -> dict:
        """Только заданные поля (для UPDATE)."""
        values = self.model_dump(exclude_none=True)
        if 'notification_preferences' in values:
            values['notification_preferences'] = values['notification_preferences'].value
        return values


__all__ = ['SubscriberPreferencesUpdate']
