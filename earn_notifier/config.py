"""
Configuration Loader для Earn Notifier.

Профиль окружения (APP_ENV) задаёт задержку отправки и интервалы
периодических задач. Значения профиля можно переопределить в
config/notifier.yaml и переменными окружения.
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'notifier.yaml'

PROFILES = ('development', 'test', 'production')

# Production: 12 часов задержки, чтобы серия правок листинга схлопнулась в одно уведомление
PROFILE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    'production': {
        'notification_delay_seconds': 12 * 60 * 60.0,
        'detection_interval_seconds': 60 * 60.0,
        'delivery_interval_seconds': 60 * 60.0,
    },
    'development': {
        'notification_delay_seconds': 5.0,
        'detection_interval_seconds': 60.0,
        'delivery_interval_seconds': 60.0,
    },
    'test': {
        'notification_delay_seconds': 5.0,
        'detection_interval_seconds': 60.0,
        'delivery_interval_seconds': 60.0,
    },
}

# Переменная окружения → поле NotifierConfig
ENV_OVERRIDES = {
    'NOTIFICATION_DELAY_SECONDS': 'notification_delay_seconds',
    'DETECTION_INTERVAL_SECONDS': 'detection_interval_seconds',
    'DELIVERY_INTERVAL_SECONDS': 'delivery_interval_seconds',
    'SEND_INTERVAL_SECONDS': 'send_interval_seconds',
    'RETENTION_DAYS': 'retention_days',
    'FETCH_RETRY_ATTEMPTS': 'fetch_retry_attempts',
    'REDIS_URL': 'redis_url',
    'SNAPSHOT_WARMUP': 'snapshot_warmup',
    'LISTING_HOST': 'listing_host',
    'UTM_SOURCE': 'utm_source',
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class NotifierConfig:
    """Параметры пайплайна уведомлений."""

    profile: str = 'development'
    notification_delay_seconds: float = 5.0
    detection_interval_seconds: float = 60.0
    delivery_interval_seconds: float = 60.0
    send_interval_seconds: float = 0.05
    retention_days: int = 7
    fetch_retry_attempts: int = 3
    redis_url: Optional[str] = None
    snapshot_warmup: bool = False
    listing_host: str = 'earn.superteam.fun'
    utm_source: str = 'telegrambot'

    @property
    def is_production(self) -> bool:
        return self.profile == 'production'

    @classmethod
    def for_profile(cls, profile: str) -> 'NotifierConfig':
        """Конфигурация с дефолтами профиля."""
        profile = (profile or 'development').strip().lower()
        if profile not in PROFILES:
            raise ValueError(f"Unknown APP_ENV profile: {profile!r} (expected one of {', '.join(PROFILES)})")
        return cls(profile=profile, **PROFILE_DEFAULTS[profile])

    @classmethod
    def from_env(
        cls,
        profile: Optional[str] = None,
        config_path: Optional[Path] = None
    ) -> 'NotifierConfig':
        """
        Сборка конфигурации: профиль → YAML → переменные окружения.

        Args:
            profile: Профиль (по умолчанию APP_ENV, иначе development)
            config_path: Путь к YAML (по умолчанию config/notifier.yaml)

        Returns:
            NotifierConfig
        """
        config = cls.for_profile(profile or os.getenv('APP_ENV', 'development'))

        yaml_values = _load_yaml_profile(config_path or DEFAULT_CONFIG_PATH, config.profile)
        if yaml_values:
            config = config.with_overrides(yaml_values)

        env_values = {
            field_name: os.environ[env_name]
            for env_name, field_name in ENV_OVERRIDES.items()
            if os.environ.get(env_name, '').strip()
        }
        if env_values:
            config = config.with_overrides(env_values)

        logger.info(
            f"⚙️  Профиль {config.profile}: задержка {config.notification_delay_seconds}s, "
            f"детекция каждые {config.detection_interval_seconds}s, "
            f"доставка каждые {config.delivery_interval_seconds}s"
        )
        return config

    def with_overrides(self, values: Dict[str, Any]) -> 'NotifierConfig':
        """Новая конфигурация с приведёнными к типам полей значениями."""
        known = {f.name: f for f in fields(self)}
        coerced = {}

        for key, value in values.items():
            if key == 'profile' or key not in known:
                logger.warning(f"⚠️  Неизвестный параметр конфигурации: {key}")
                continue

            default = getattr(self, key)
            if isinstance(default, bool):
                coerced[key] = _parse_bool(value)
            elif isinstance(default, int):
                coerced[key] = int(value)
            elif isinstance(default, float):
                coerced[key] = float(value)
            else:
                coerced[key] = value if value not in ('', None) else None

        return replace(self, **coerced)

    @property
    def listing_url_template(self) -> str:
        return f"https://{self.listing_host}/listing/{{slug}}?utm_source={self.utm_source}"


def _load_yaml_profile(config_path: Path, profile: str) -> Dict[str, Any]:
    """Секция profiles.<profile> из YAML (пустой dict если файла нет)."""
    if not config_path.exists():
        return {}

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    values = dict(data.get('defaults') or {})
    values.update((data.get('profiles') or {}).get(profile) or {})
    return values


__all__ = ['NotifierConfig', 'PROFILES', 'PROFILE_DEFAULTS']
