"""
Snapshot Store - базовая линия для сравнения листингов между циклами.

Хранит набор листингов последнего успешного цикла детекции.
Redis, если задан REDIS_URL (снапшот переживает рестарт процесса),
иначе хранение в памяти процесса.
"""

import json
import logging
from typing import Dict, Iterable, Optional

import redis.asyncio as aioredis

from earn_notifier.models import Listing

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = 'published_active_bounties'


class SnapshotStore:
    """
    Интерфейс снапшота.

    get() → None означает, что снапшота ещё нет (холодный старт).
    replace() заменяет снапшот целиком.
    """

    async def get(self) -> Optional[Dict[str, Listing]]:
        raise NotImplementedError

    async def replace(self, listings: Iterable[Listing]) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class InMemorySnapshotStore(SnapshotStore):
    """Снапшот в памяти процесса."""

    def __init__(self):
        self._snapshot: Optional[Dict[str, Listing]] = None

    async def get(self) -> Optional[Dict[str, Listing]]:
        if self._snapshot is None:
            return None
        return dict(self._snapshot)

    async def replace(self, listings: Iterable[Listing]) -> None:
        # Новый dict подменяется одним присваиванием
        self._snapshot = {listing.id: listing for listing in listings}


class RedisSnapshotStore(SnapshotStore):
    """Снапшот в Redis: один JSON-ключ, запись одним SET."""

    def __init__(self, redis_url: str, key: str = SNAPSHOT_KEY, client: Optional[aioredis.Redis] = None):
        self.key = key
        self._redis = client or aioredis.from_url(redis_url, decode_responses=True)

    async def get(self) -> Optional[Dict[str, Listing]]:
        raw = await self._redis.get(self.key)
        if raw is None:
            return None

        snapshot = {}
        for item in json.loads(raw):
            listing = Listing.from_payload(item)
            snapshot[listing.id] = listing
        return snapshot

    async def replace(self, listings: Iterable[Listing]) -> None:
        payload = json.dumps([listing.to_payload() for listing in listings], ensure_ascii=False)
        await self._redis.set(self.key, payload)

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("🔌 Redis снапшот отключен")


def create_snapshot_store(redis_url: Optional[str] = None) -> SnapshotStore:
    """Снапшот по конфигурации: Redis если задан URL, иначе память процесса."""
    if redis_url:
        logger.info("✅ Снапшот листингов хранится в Redis")
        return RedisSnapshotStore(redis_url)

    logger.info("ℹ️ REDIS_URL не задан, снапшот листингов хранится в памяти")
    return InMemorySnapshotStore()


__all__ = [
    'SNAPSHOT_KEY',
    'SnapshotStore',
    'InMemorySnapshotStore',
    'RedisSnapshotStore',
    'create_snapshot_store',
]
