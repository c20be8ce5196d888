"""
Change Detector для листингов Earn.

Сравнивает текущий набор листингов со снапшотом предыдущего цикла
и выдаёт типизированные события изменений.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from earn_notifier.cache import SnapshotStore
from earn_notifier.models import (
    ChangeEvent,
    DeadlineChanged,
    Listing,
    NewListing,
    RegionChanged,
)

logger = logging.getLogger(__name__)


def detect_changes(
    previous: Optional[Dict[str, Listing]],
    current: Iterable[Listing]
) -> List[ChangeEvent]:
    """
    Диф текущих листингов против снапшота.

    - нет в снапшоте → только NewListing
    - регион отличается → RegionChanged (со старым регионом)
    - дедлайн отличается (None отличен от любой даты) → DeadlineChanged
    Исчезнувшие листинги событий не дают.

    Args:
        previous: Снапшот (None = холодный старт, все листинги новые)
        current: Текущие листинги

    Returns:
        События в порядке листингов
    """
    previous = previous or {}
    events: List[ChangeEvent] = []

    for listing in current:
        old = previous.get(listing.id)

        if old is None:
            events.append(NewListing(listing))
            continue

        if old.region != listing.region:
            events.append(RegionChanged(listing, old_region=old.region))

        if old.deadline != listing.deadline:
            events.append(DeadlineChanged(listing, old_deadline=old.deadline))

    return events


class ChangeDetector:
    """
    Цикл детекции: выборка листингов → диф → замена снапшота (commit).

    Ошибка выборки прерывает цикл: снапшот не трогается, событий нет.
    """

    def __init__(self, repository, snapshot_store: SnapshotStore):
        """
        Args:
            repository: ListingRepository (fetch_eligible_listings)
            snapshot_store: Хранилище снапшота
        """
        self.repository = repository
        self.snapshot_store = snapshot_store

    async def detect(self) -> Optional[Tuple[List[ChangeEvent], List[Listing]]]:
        """
        Выборка и диф без изменения снапшота.

        Returns:
            (события, текущие листинги) или None, если выборка не удалась
        """
        try:
            current = await self.repository.fetch_eligible_listings()
        except Exception as e:
            logger.error(f"❌ Не удалось получить листинги, цикл прерван: {e}", exc_info=True)
            return None

        previous = await self.snapshot_store.get()
        if previous is None:
            logger.warning(
                f"⚠️ Снапшот пуст (холодный старт): все {len(current)} листингов будут считаться новыми"
            )

        events = detect_changes(previous, current)

        if events:
            counts: Dict[str, int] = {}
            for event in events:
                counts[event.change_type.value] = counts.get(event.change_type.value, 0) + 1
            summary = ', '.join(f"{name}: {count}" for name, count in sorted(counts.items()))
            logger.info(f"🔎 Обнаружено {len(events)} изменений ({summary})")
        else:
            logger.debug("Изменений в листингах нет")

        return events, current

    async def commit(self, current: List[Listing]):
        """Замена снапшота после того, как события цикла обработаны."""
        await self.snapshot_store.replace(current)

    async def run_cycle(self) -> Optional[List[ChangeEvent]]:
        """
        Детекция и сразу замена снапшота.

        Returns:
            Список событий или None, если выборка не удалась
        """
        detected = await self.detect()
        if detected is None:
            return None

        events, current = detected
        await self.commit(current)
        return events

    async def warm_up(self) -> bool:
        """
        Заполнение снапшота без генерации событий (при старте процесса).

        Returns:
            True если снапшот заполнен
        """
        try:
            current = await self.repository.fetch_eligible_listings()
        except Exception as e:
            logger.error(f"❌ Прогрев снапшота не удался: {e}")
            return False

        await self.snapshot_store.replace(current)
        logger.info(f"🔥 Снапшот прогрет: {len(current)} листингов")
        return True


__all__ = ['ChangeDetector', 'detect_changes']
