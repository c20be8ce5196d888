"""Фикстуры интеграционных тестов: временная SQLite база с таблицами Earn и бота."""

from datetime import timedelta

import pytest
import pytest_asyncio

from database import (
    BountyNotification,
    DatabaseSession,
    Listing as ListingRow,
    Sponsor,
    TelegramUser,
    close_database,
    init_database,
)


@pytest_asyncio.fixture
async def db(tmp_path):
    """Чистая база на каждый тест."""
    await close_database()
    await init_database(
        f"sqlite+aiosqlite:///{tmp_path / 'earn_test.db'}",
        create_marketplace_tables=True
    )
    yield
    await close_database()


@pytest.fixture
def add_listing(now):
    """Вставка листинга Earn (по умолчанию подходит под выборку)."""

    async def _add(listing_id, **overrides):
        values = {
            'id': listing_id,
            'title': f'Listing {listing_id}',
            'slug': f'slug-{listing_id}',
            'sponsor_id': 'sponsor-1',
            'reward_amount': 1000.0,
            'token': 'USDC',
            'compensation_type': 'fixed',
            'deadline': now + timedelta(days=7),
            'skills': [{'skills': 'Backend', 'subskills': []}, {'skills': 'Design'}],
            'region': 'GLOBAL',
            'type': 'bounty',
            'status': 'OPEN',
            'is_published': True,
            'is_active': True,
        }
        values.update(overrides)

        async with DatabaseSession() as session:
            if await session.get(Sponsor, values['sponsor_id']) is None:
                session.add(Sponsor(id=values['sponsor_id'], name='Superteam'))
                await session.flush()
            session.add(ListingRow(**values))

    return _add


@pytest.fixture
def update_listing():

    async def _update(listing_id, **values):
        async with DatabaseSession() as session:
            row = await session.get(ListingRow, listing_id)
            for key, value in values.items():
                setattr(row, key, value)

    return _update


@pytest.fixture
def fetch_notifications():

    async def _fetch():
        from sqlalchemy import select
        async with DatabaseSession() as session:
            result = await session.execute(select(BountyNotification).order_by(BountyNotification.id))
            return list(result.scalars().all())

    return _fetch


@pytest.fixture
def set_created_at():

    async def _set(notification_id, created_at):
        async with DatabaseSession() as session:
            row = await session.get(BountyNotification, notification_id)
            row.created_at = created_at

    return _set


@pytest.fixture
def delete_user():

    async def _delete(telegram_id):
        async with DatabaseSession() as session:
            user = await session.get(TelegramUser, telegram_id)
            await session.delete(user)

    return _delete


class FakeGateway:
    """Messaging gateway, запоминающий отправленные сообщения."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def send_message(self, recipient_id, text):
        if recipient_id in self.fail_for:
            return False
        self.sent.append((recipient_id, text))
        return True

    async def close(self):
        pass


@pytest.fixture
def gateway():
    return FakeGateway()
