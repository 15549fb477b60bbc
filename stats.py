# stats.py
from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, List

from cache import CacheEvent, EventType


@dataclass(frozen=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    false_sharing_count: int = 0
    total_accesses: int = 0

    @property
    def hit_rate(self):
        return self.hits / self.total_accesses if self.total_accesses > 0 else 0

    def __add__(self, b: 'CacheStats'):
        return CacheStats(
            hits=self.hits + b.hits,
            misses=self.misses + b.misses,
            false_sharing_count=self.false_sharing_count + b.false_sharing_count,
            total_accesses=self.total_accesses + b.total_accesses,
        )


def fold(event: CacheEvent, stats: CacheStats) -> CacheStats:
    """Count one event into the stats of the core that issued it."""
    hits, misses, false_sharing = stats.hits, stats.misses, stats.false_sharing_count
    if event.type == EventType.HIT:
        hits += 1
    elif event.type in (EventType.MISS, EventType.EVICTION):
        misses += 1
    elif event.type == EventType.FALSE_SHARING:
        false_sharing += 1
    return replace(
        stats,
        hits=hits,
        misses=misses,
        false_sharing_count=false_sharing,
        total_accesses=stats.total_accesses + 1,
    )


def zero_stats(num_cores) -> List[CacheStats]:
    return [CacheStats() for _ in range(num_cores)]


def replay(events: Iterable[CacheEvent], num_cores) -> List[CacheStats]:
    """Rebuild per-core stats by folding an event log from zero."""
    stats = zero_stats(num_cores)
    for event in events:
        stats[event.core_id] = fold(event, stats[event.core_id])
    return stats


def total(stats: Iterable[CacheStats]) -> CacheStats:
    return reduce(lambda a, b: a + b, stats, CacheStats())
