"""
Unit тесты для ChangeDetector.

Тестируем:
- Диф снапшота: новые листинги, смена региона, смена дедлайна
- Холодный старт (снапшота нет)
- Исчезнувшие листинги
- Цикл детекции: замена снапшота, прерывание при ошибке выборки
- Прогрев снапшота
"""

from datetime import timedelta

import pytest

from earn_notifier.cache import InMemorySnapshotStore
from earn_notifier.detection import ChangeDetector, detect_changes
from earn_notifier.models import ChangeType, DeadlineChanged, NewListing, RegionChanged


class FakeRepository:
    """Репозиторий листингов с управляемым результатом."""

    def __init__(self, listings=None, error=None):
        self.listings = listings or []
        self.error = error
        self.calls = 0

    async def fetch_eligible_listings(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.listings)


@pytest.mark.unit
class TestDetectChanges:
    """Тесты чистой функции detect_changes."""

    def test_absent_listing_yields_only_new_listing(self, make_listing):
        listing = make_listing('a', region='INDIA')

        events = detect_changes({}, [listing])

        assert events == [NewListing(listing)]

    def test_cold_start_treats_everything_as_new(self, make_listing):
        listings = [make_listing('a'), make_listing('b')]

        events = detect_changes(None, listings)

        assert [type(e) for e in events] == [NewListing, NewListing]

    def test_unchanged_listing_yields_nothing(self, make_listing):
        listing = make_listing('a')

        assert detect_changes({'a': listing}, [listing]) == []

    def test_payout_change_is_not_an_event(self, make_listing):
        old = make_listing('a', payout=100.0)
        new = make_listing('a', payout=200.0)

        assert detect_changes({'a': old}, [new]) == []

    def test_region_change(self, make_listing):
        old = make_listing('a', region='INDIA')
        new = make_listing('a', region='VIETNAM')

        events = detect_changes({'a': old}, [new])

        assert len(events) == 1
        assert isinstance(events[0], RegionChanged)
        assert events[0].old_region == 'INDIA'
        assert events[0].listing.region == 'VIETNAM'
        assert events[0].change_type == ChangeType.REGION_UPDATED

    def test_deadline_change_full_precision(self, make_listing, now):
        old = make_listing('a', deadline=now)
        new = make_listing('a', deadline=now + timedelta(microseconds=1))

        events = detect_changes({'a': old}, [new])

        assert len(events) == 1
        assert isinstance(events[0], DeadlineChanged)
        assert events[0].old_deadline == now

    def test_null_deadline_is_distinct(self, make_listing, now):
        old = make_listing('a', deadline=None)
        new = make_listing('a', deadline=now)

        events = detect_changes({'a': old}, [new])

        assert [type(e) for e in events] == [DeadlineChanged]
        assert events[0].old_deadline is None

    def test_region_and_deadline_in_same_cycle(self, make_listing, now):
        old = make_listing('a', region='INDIA', deadline=now)
        new = make_listing('a', region='GLOBAL', deadline=now + timedelta(days=1))

        events = detect_changes({'a': old}, [new])

        assert [type(e) for e in events] == [RegionChanged, DeadlineChanged]

    def test_removed_listing_yields_nothing(self, make_listing):
        gone = make_listing('gone')

        assert detect_changes({'gone': gone}, []) == []

    def test_events_follow_current_order(self, make_listing):
        previous = {'b': make_listing('b', region='INDIA')}
        current = [make_listing('a'), make_listing('b', region='UK'), make_listing('c')]

        events = detect_changes(previous, current)

        assert [(type(e), e.listing.id) for e in events] == [
            (NewListing, 'a'),
            (RegionChanged, 'b'),
            (NewListing, 'c'),
        ]


@pytest.mark.unit
class TestChangeDetectorCycle:
    """Тесты цикла детекции со снапшотом."""

    @pytest.mark.asyncio
    async def test_cycle_replaces_snapshot(self, make_listing):
        store = InMemorySnapshotStore()
        repository = FakeRepository([make_listing('a'), make_listing('b')])
        detector = ChangeDetector(repository, store)

        events = await detector.run_cycle()

        assert len(events) == 2
        snapshot = await store.get()
        assert set(snapshot) == {'a', 'b'}

    @pytest.mark.asyncio
    async def test_detect_leaves_snapshot_until_commit(self, make_listing):
        store = InMemorySnapshotStore()
        detector = ChangeDetector(FakeRepository([make_listing('a')]), store)

        events, current = await detector.detect()

        assert [e.listing.id for e in events] == ['a']
        assert await store.get() is None

        await detector.commit(current)
        assert set(await store.get()) == {'a'}

    @pytest.mark.asyncio
    async def test_second_cycle_without_changes_is_empty(self, make_listing):
        store = InMemorySnapshotStore()
        detector = ChangeDetector(FakeRepository([make_listing('a')]), store)

        await detector.run_cycle()
        events = await detector.run_cycle()

        assert events == []

    @pytest.mark.asyncio
    async def test_removed_listing_dropped_from_snapshot(self, make_listing):
        store = InMemorySnapshotStore()
        repository = FakeRepository([make_listing('a'), make_listing('b')])
        detector = ChangeDetector(repository, store)
        await detector.run_cycle()

        repository.listings = [make_listing('a')]
        events = await detector.run_cycle()

        assert events == []
        assert set(await store.get()) == {'a'}

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_snapshot(self, make_listing):
        store = InMemorySnapshotStore()
        await store.replace([make_listing('a')])
        detector = ChangeDetector(FakeRepository(error=ConnectionError("db down")), store)

        events = await detector.run_cycle()

        assert events is None
        assert set(await store.get()) == {'a'}

    @pytest.mark.asyncio
    async def test_fetch_failure_on_cold_start_leaves_no_snapshot(self):
        store = InMemorySnapshotStore()
        detector = ChangeDetector(FakeRepository(error=RuntimeError("boom")), store)

        assert await detector.run_cycle() is None
        assert await store.get() is None

    @pytest.mark.asyncio
    async def test_warm_up_suppresses_cold_start_burst(self, make_listing):
        store = InMemorySnapshotStore()
        detector = ChangeDetector(FakeRepository([make_listing('a')]), store)

        assert await detector.warm_up() is True
        assert await detector.run_cycle() == []

    @pytest.mark.asyncio
    async def test_warm_up_failure(self):
        store = InMemorySnapshotStore()
        detector = ChangeDetector(FakeRepository(error=RuntimeError("boom")), store)

        assert await detector.warm_up() is False
        assert await store.get() is None
