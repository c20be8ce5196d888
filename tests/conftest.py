"""Общие фикстуры: фабрики листингов и подписчиков."""

from datetime import datetime, timedelta

import pytest

from earn_notifier.models import (
    CompensationType,
    Listing,
    ListingType,
    NotificationPreference,
    Subscriber,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_listing():
    """Фабрика листингов с разумными значениями по умолчанию."""

    def _make(listing_id='listing-1', **overrides):
        values = {
            'id': listing_id,
            'name': 'Build a Solana Dashboard',
            'link': f'https://earn.superteam.fun/listing/{listing_id}?utm_source=telegrambot',
            'slug': listing_id,
            'sponsor_name': 'Superteam',
            'type': ListingType.BOUNTY,
            'region': 'GLOBAL',
            'deadline': NOW + timedelta(days=5),
            'payout': 1000.0,
            'token': 'USDC',
            'compensation_type': CompensationType.FIXED,
            'skills_needed': ('BACKEND', 'DESIGN'),
        }
        values.update(overrides)
        return Listing(**values)

    return _make


@pytest.fixture
def make_subscriber():
    """Фабрика подписчиков (настройка завершена, BOTH, любой регион листинга)."""

    def _make(subscriber_id=1001, **overrides):
        values = {
            'id': subscriber_id,
            'region': 'GLOBAL',
            'skills': frozenset({'ALL'}),
            'notification_preference': NotificationPreference.BOTH,
            'min_reward_ask': 0,
            'setup': True,
        }
        values.update(overrides)
        if not isinstance(values['skills'], frozenset):
            values['skills'] = frozenset(values['skills'])
        return Subscriber(**values)

    return _make
