# coherence.py
import logging
from dataclasses import replace
from typing import NamedTuple

from cache import (
    DEFAULT_LINE_SIZE,
    AccessKind,
    CacheEvent,
    Caches,
    CacheLine,
    CoherenceState,
    EventType,
    MemoryAccess,
    block_tag,
    check_coherence,
    find_line,
    line_offset,
    select_victim,
)

logger = logging.getLogger(__name__)


class StepResult(NamedTuple):
    event: CacheEvent
    updated_caches: Caches


def _next_recency(caches: Caches):
    # one past the newest line across every core, so recency is a total order
    return max((line.recency for core in caches for line in core), default=0) + 1


def _validate(access: MemoryAccess, caches: Caches, line_size):
    if not 0 <= access.core_id < len(caches):
        raise ValueError(f"core_id {access.core_id} out of range [0, {len(caches)})")
    if access.address < 0:
        raise ValueError(f"address must be non-negative, got {access.address}")
    if line_size < 1:
        raise ValueError(f"line_size must be >= 1, got {line_size}")
    if not isinstance(access.kind, AccessKind):
        raise ValueError(f"unknown access kind {access.kind!r}")


def step(access: MemoryAccess, caches: Caches, line_size=DEFAULT_LINE_SIZE) -> StepResult:
    """
    Resolve one memory access against the multicore cache state.

    Returns the classified event and a new caches value; `caches` is left untouched.
    Transition per access (core, address, kind):
      - hit: bump recency, a write promotes the line to MODIFIED
      - miss: fill the first invalid slot or evict the LRU line, install SHARED
        on a read and MODIFIED on a write
      - a write invalidates every other core's copy of the block
      - a read miss downgrades another core's MODIFIED copy to SHARED
      - if an invalidated copy was last used at a different offset the event
        becomes FALSE_SHARING
    """
    _validate(access, caches, line_size)

    tag = block_tag(access.address, line_size)
    offset = line_offset(access.address, line_size)
    recency = _next_recency(caches)
    is_write = access.kind == AccessKind.WRITE

    updated = [list(core) for core in caches]
    own = updated[access.core_id]

    slot = find_line(caches[access.core_id], tag)
    evicted_tag = None
    if slot is not None:
        # hit -> refresh recency, upgrade on write
        line = own[slot]
        state = CoherenceState.MODIFIED if is_write else line.state
        own[slot] = replace(line, state=state, recency=recency, offset=offset)
        event_type = EventType.HIT
    else:
        slot = select_victim(caches[access.core_id])
        victim = own[slot]
        if victim.valid:
            evicted_tag = victim.tag
            logger.debug("step %d: core %d evicts block %d from slot %d",
                         access.step, access.core_id, victim.tag, slot)
        own[slot] = CacheLine(
            valid=True,
            tag=tag,
            state=CoherenceState.MODIFIED if is_write else CoherenceState.SHARED,
            recency=recency,
            offset=offset,
        )
        event_type = EventType.MISS

    involved = set()
    false_sharing = False
    for core_id, core in enumerate(updated):
        if core_id == access.core_id:
            continue
        other = find_line(core, tag)
        if other is None:
            continue
        line = core[other]
        if is_write:
            core[other] = line.invalidated()
            involved.add(core_id)
            if line.offset != offset:
                false_sharing = True
        elif event_type == EventType.MISS and line.state == CoherenceState.MODIFIED:
            core[other] = replace(line, state=CoherenceState.SHARED)
            involved.add(core_id)

    if false_sharing:
        event_type = EventType.FALSE_SHARING
        logger.debug("step %d: false sharing on block %d between core %d and cores %s",
                     access.step, tag, access.core_id, sorted(involved))

    updated_caches = tuple(tuple(core) for core in updated)
    check_coherence(updated_caches)

    event = CacheEvent(
        step=access.step,
        core_id=access.core_id,
        address=access.address,
        type=event_type,
        involved_cores=frozenset(involved),
        evicted_tag=evicted_tag,
    )
    logger.debug("step %d: core %d %s addr %d -> %s",
                 access.step, access.core_id, access.kind.name, access.address,
                 event_type.name)
    return StepResult(event, updated_caches)
