# cache.py
from dataclasses import dataclass, field
from enum import IntEnum
from typing import FrozenSet, Optional, Tuple

DEFAULT_CAPACITY = 4
DEFAULT_LINE_SIZE = 4


class CoherenceError(RuntimeError):
    """Raised when the Modified-exclusivity invariant is broken (engine bug)."""


class CoherenceState(IntEnum):
    INVALID = 0
    SHARED = 1    # readable, possibly cached elsewhere
    MODIFIED = 2  # dirty, held by this core only


class AccessKind(IntEnum):
    READ = 0
    WRITE = 1


class EventType(IntEnum):
    HIT = 0
    MISS = 1
    EVICTION = 2
    FALSE_SHARING = 3


@dataclass(frozen=True)
class CacheLine:
    """
    One slot in one core's cache.
    `offset` is the intra-line offset of the last access that touched the line.
    """
    valid: bool = False
    tag: int = 0
    state: CoherenceState = CoherenceState.INVALID
    recency: int = 0
    offset: int = 0

    def __post_init__(self):
        if not self.valid and self.state != CoherenceState.INVALID:
            raise ValueError(f"invalid line cannot be in state {self.state.name}")

    def invalidated(self) -> "CacheLine":
        return CacheLine(tag=self.tag, recency=self.recency, offset=self.offset)


CoreCache = Tuple[CacheLine, ...]
Caches = Tuple[CoreCache, ...]


@dataclass(frozen=True)
class MemoryAccess:
    step: int
    core_id: int
    address: int
    kind: AccessKind


@dataclass(frozen=True)
class CacheEvent:
    step: int
    core_id: int
    address: int
    type: EventType
    involved_cores: FrozenSet[int] = field(default_factory=frozenset)
    evicted_tag: Optional[int] = None

    @property
    def evicted(self) -> bool:
        return self.evicted_tag is not None or self.type == EventType.EVICTION


def initialize(num_cores, capacity=DEFAULT_CAPACITY) -> Caches:
    """
    Build `num_cores` empty caches of `capacity` lines each (all invalid, recency 0).
    """
    if num_cores < 1:
        raise ValueError(f"num_cores must be >= 1, got {num_cores}")
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")
    empty = tuple(CacheLine() for _ in range(capacity))
    return tuple(empty for _ in range(num_cores))


def block_tag(address, line_size=DEFAULT_LINE_SIZE):
    return address // line_size


def line_offset(address, line_size=DEFAULT_LINE_SIZE):
    return address % line_size


def find_line(core_cache: CoreCache, tag) -> Optional[int]:
    """Linear scan for a valid line holding `tag`; returns its slot index or None."""
    for i, line in enumerate(core_cache):
        if line.valid and line.tag == tag:
            return i
    return None


def select_victim(core_cache: CoreCache) -> int:
    """
    Pick the slot to fill on a miss.
    First invalid slot if there is one, otherwise the least recently used line
    (lowest recency, ties -> lowest slot index).
    """
    for i, line in enumerate(core_cache):
        if not line.valid:
            return i
    return min(range(len(core_cache)), key=lambda i: (core_cache[i].recency, i))


def check_coherence(caches: Caches):
    """
    Verify that no tag is MODIFIED in one core while valid in any other.
    Raises CoherenceError on violation.
    """
    holders = {}
    for core_id, core_cache in enumerate(caches):
        for line in core_cache:
            if line.valid:
                holders.setdefault(line.tag, []).append((core_id, line.state))
    for tag, cores in holders.items():
        owners = [c for c, s in cores if s == CoherenceState.MODIFIED]
        if owners and len(cores) > 1:
            raise CoherenceError(
                f"block {tag} is MODIFIED in core {owners[0]} but held by cores "
                f"{sorted(c for c, _ in cores)}"
            )


def format_caches(caches: Caches):
    """Render the per-core cache contents as text, one line per core."""
    rows = []
    for core_id, core_cache in enumerate(caches):
        slots = []
        for line in core_cache:
            if line.valid:
                slots.append(f"{line.tag:>3}:{line.state.name[0]}@{line.recency}")
            else:
                slots.append("  -- ")
        rows.append(f"Core {core_id}: [" + " | ".join(slots) + "]")
    return "\n".join(rows)
