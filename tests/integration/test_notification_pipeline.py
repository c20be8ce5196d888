"""
Интеграционные тесты на SQLite: репозиторий листингов, подписчики,
планирование, доставка и очистка уведомлений.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from database import utcnow
from earn_notifier.cache import InMemorySnapshotStore
from earn_notifier.config import NotifierConfig
from earn_notifier.database import ListingRepository, NotificationStore, SubscriberStore
from earn_notifier.models import (
    ChangeType,
    CompensationType,
    ListingType,
    NewListing,
    NotificationPreference,
)
from earn_notifier.notifications import DeliveryWorker, NotificationScheduler, RetentionSweeper
from earn_notifier.service import EarnNotifierService


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


async def add_subscriber(store, telegram_id, **preferences):
    await store.upsert(telegram_id, username=f'user{telegram_id}')
    values = {'notification_preferences': 'BOTH', 'setup': True}
    values.update(preferences)
    await store.update_preferences(telegram_id, **values)
    return await store.get_subscriber(telegram_id)


@pytest.mark.integration
class TestListingRepository:

    @pytest.mark.asyncio
    async def test_only_eligible_listings(self, db, add_listing, now):
        await add_listing('ok-bounty')
        await add_listing('ok-project', type='project')
        await add_listing('hackathon', type='hackathon')
        await add_listing('draft', is_published=False)
        await add_listing('inactive', is_active=False)
        await add_listing('expired', deadline=now - timedelta(hours=1))
        await add_listing('review', status='REVIEW')

        listings = await ListingRepository(NotifierConfig.for_profile('test')).fetch_eligible_listings(now=now)

        assert [listing.id for listing in listings] == ['ok-bounty', 'ok-project']

    @pytest.mark.asyncio
    async def test_listing_is_canonicalized(self, db, add_listing, now):
        await add_listing(
            'range',
            slug='design-a-logo',
            type='Project',
            region='india',
            compensation_type='range',
            reward_amount=None,
            min_reward_ask=100.0,
            max_reward_ask=300.0,
        )

        listing, = await ListingRepository(NotifierConfig.for_profile('test')).fetch_eligible_listings(now=now)

        assert listing.type == ListingType.PROJECT
        assert listing.region == 'INDIA'
        assert listing.compensation_type == CompensationType.RANGE
        assert listing.skills_needed == ('BACKEND', 'DESIGN')
        assert listing.sponsor_name == 'Superteam'
        assert listing.link == 'https://earn.superteam.fun/listing/design-a-logo?utm_source=telegrambot'


@pytest.mark.integration
class TestSubscriberStore:

    @pytest.mark.asyncio
    async def test_upsert_defaults(self, db):
        store = SubscriberStore()

        subscriber = await store.upsert(42, username='alice')
        again = await store.upsert(42, username='alice_new')

        assert subscriber.region == 'GLOBAL'
        assert subscriber.skills == frozenset({'ALL'})
        assert subscriber.notification_preference == NotificationPreference.NONE
        assert subscriber.setup is False
        assert again.id == 42

    @pytest.mark.asyncio
    async def test_update_preferences(self, db):
        store = SubscriberStore()
        await store.upsert(42)

        updated = await store.update_preferences(42, region='india', skills=['backend'], min_reward_ask=500)
        subscriber = await store.get_subscriber(42)

        assert updated is True
        assert subscriber.region == 'INDIA'
        assert subscriber.skills == frozenset({'BACKEND'})
        assert subscriber.min_reward_ask == 500

    @pytest.mark.asyncio
    async def test_update_unknown_subscriber(self, db):
        assert await SubscriberStore().update_preferences(404, region='INDIA') is False

    @pytest.mark.asyncio
    async def test_invalid_preferences_rejected(self, db):
        store = SubscriberStore()
        await store.upsert(42)

        with pytest.raises(ValidationError):
            await store.update_preferences(42, region='ATLANTIS')

    @pytest.mark.asyncio
    async def test_notifiable_subscribers(self, db):
        store = SubscriberStore()
        await add_subscriber(store, 1)
        await add_subscriber(store, 2, setup=False)
        await add_subscriber(store, 3, notification_preferences='NONE')
        await add_subscriber(store, 4, notification_preferences='bounty')
        await store.upsert(5)

        subscribers = await store.get_notifiable_subscribers()

        assert [subscriber.id for subscriber in subscribers] == [1, 4]


@pytest.mark.integration
class TestNotificationStore:

    @pytest.mark.asyncio
    async def test_scheduling_is_idempotent(self, db, make_listing, now, fetch_notifications):
        subscriber = await add_subscriber(SubscriberStore(), 1)
        scheduler = NotificationScheduler(NotificationStore(), delay_seconds=60)
        event = NewListing(make_listing('a'))

        assert await scheduler.schedule_event(subscriber, event, now=now) is not None
        assert await scheduler.schedule_event(subscriber, event, now=now) is None

        rows = await fetch_notifications()
        assert len(rows) == 1
        assert rows[0].send_at == now + timedelta(seconds=60)
        assert rows[0].bounty_details['id'] == 'a'

    @pytest.mark.asyncio
    async def test_duplicate_insert_returns_none(self, db, now, fetch_notifications):
        await SubscriberStore().upsert(1)
        store = NotificationStore()
        fields = dict(
            telegram_user_id=1,
            bounty_id='a',
            notification_type=ChangeType.NEW_LISTING.value,
            bounty_details={'id': 'a'},
            send_at=now
        )

        assert await store.create(**fields) is not None
        assert await store.create(**fields) is None
        assert len(await fetch_notifications()) == 1

    @pytest.mark.asyncio
    async def test_due_items_in_order(self, db, now):
        await SubscriberStore().upsert(1)
        store = NotificationStore()
        for bounty_id, offset in [('late', -1), ('early', -10), ('future', 10)]:
            await store.create(
                telegram_user_id=1,
                bounty_id=bounty_id,
                notification_type='NEW_LISTING',
                bounty_details={'id': bounty_id},
                send_at=now + timedelta(minutes=offset)
            )

        due = await store.get_due(now)

        assert [item['bounty_id'] for item in due] == ['early', 'late']
        assert all(item['recipient_id'] == 1 for item in due)


@pytest.mark.integration
class TestDelivery:

    async def _schedule(self, subscriber, listing, now):
        scheduler = NotificationScheduler(NotificationStore(), delay_seconds=0)
        return await scheduler.schedule_event(subscriber, NewListing(listing), now=now)

    @pytest.mark.asyncio
    async def test_delivered_at_most_once(self, db, make_listing, now, gateway):
        subscriber = await add_subscriber(SubscriberStore(), 1)
        await self._schedule(subscriber, make_listing('a', name='Write a thread'), now)
        worker = DeliveryWorker(NotificationStore(), gateway, send_interval=0)

        first = await worker.run_once(now=now)
        second = await worker.run_once(now=now)

        assert first['sent'] == 1
        assert second['sent'] == 0
        assert len(gateway.sent) == 1
        recipient_id, text = gateway.sent[0]
        assert recipient_id == 1
        assert 'Write a thread' in text

    @pytest.mark.asyncio
    async def test_missing_recipient_dropped(self, db, make_listing, now, gateway, delete_user, fetch_notifications):
        subscriber = await add_subscriber(SubscriberStore(), 1)
        await self._schedule(subscriber, make_listing('a'), now)
        await delete_user(1)

        stats = await DeliveryWorker(NotificationStore(), gateway, send_interval=0).run_once(now=now)

        assert stats['dropped'] == 1
        assert gateway.sent == []
        assert all(row.sent for row in await fetch_notifications())

    @pytest.mark.asyncio
    async def test_unknown_type_left_unsent(self, db, now, gateway, fetch_notifications):
        await SubscriberStore().upsert(1)
        await NotificationStore().create(
            telegram_user_id=1,
            bounty_id='a',
            notification_type='NEW_BOUNTY',
            bounty_details={'id': 'a'},
            send_at=now
        )

        stats = await DeliveryWorker(NotificationStore(), gateway, send_interval=0).run_once(now=now)

        assert stats['skipped'] == 1
        assert gateway.sent == []
        assert [row.sent for row in await fetch_notifications()] == [False]


@pytest.mark.integration
class TestRetention:

    @pytest.mark.asyncio
    async def test_purges_sent_rows_older_than_retention(self, db, now, set_created_at, fetch_notifications):
        await SubscriberStore().upsert(1)
        store = NotificationStore()
        for bounty_id, age_days, sent in [('old-sent', 8, True), ('fresh-sent', 6, True), ('old-pending', 8, False)]:
            row = await store.create(
                telegram_user_id=1,
                bounty_id=bounty_id,
                notification_type='NEW_LISTING',
                bounty_details={'id': bounty_id},
                send_at=now
            )
            await set_created_at(row['id'], now - timedelta(days=age_days))
            if sent:
                await store.mark_sent(row['id'])

        purged = await RetentionSweeper(store, retention_days=7).run_once(now=now)

        assert purged == 1
        assert sorted(row.bounty_id for row in await fetch_notifications()) == ['fresh-sent', 'old-pending']


@pytest.mark.integration
class TestServiceCycle:

    @pytest.mark.asyncio
    async def test_detection_and_delivery(self, db, add_listing, update_listing, gateway, now):
        subscriber_store = SubscriberStore()
        await add_subscriber(subscriber_store, 1, region='INDIA')
        await add_subscriber(subscriber_store, 2, region='UK', skills=['DESIGN'])
        await add_listing('india-only', region='INDIA')
        await add_listing('global')

        config = NotifierConfig.for_profile('test').with_overrides({
            'notification_delay_seconds': 0,
            'send_interval_seconds': 0,
        })
        notification_store = NotificationStore()
        service = EarnNotifierService(
            config=config,
            repository=ListingRepository(config),
            subscriber_store=subscriber_store,
            notification_store=notification_store,
            snapshot_store=InMemorySnapshotStore(),
            gateway=gateway
        )

        assert await service.run_detection_cycle() == 3
        delivered = await service.run_delivery_cycle()
        assert delivered['sent'] == 3

        await update_listing('global', deadline=now + timedelta(days=14))
        assert await service.run_detection_cycle() == 2

        due = await notification_store.get_due(utcnow())
        assert {item['notification_type'] for item in due} == {'DEADLINE_UPDATED'}
        assert {item['recipient_id'] for item in due} == {1, 2}
