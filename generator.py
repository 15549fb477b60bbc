# generator.py
from collections import deque

import numpy as np

from cache import DEFAULT_LINE_SIZE, AccessKind, MemoryAccess, block_tag, line_offset

DEFAULT_ADDRESS_RANGE = 64
DEFAULT_READ_RATIO = 0.7
RECENT_WINDOW = 16


def _pick_false_sharing_address(rng, recent, core_id, line_size, address_range):
    """
    Choose an address in a block recently touched by another core, at an
    offset that core did not use. Returns None if no such block exists.
    """
    candidates = [t for t in recent if t[0] != core_id]
    if not candidates or line_size < 2:
        return None
    _, tag, used_offset = candidates[int(rng.integers(0, len(candidates)))]
    offset = int(rng.integers(0, line_size - 1))
    if offset >= used_offset:
        offset += 1
    address = tag * line_size + offset
    return address if address < address_range else None


def generate(count, num_cores, false_sharing_probability, seed=None,
             line_size=DEFAULT_LINE_SIZE, address_range=DEFAULT_ADDRESS_RANGE,
             read_ratio=DEFAULT_READ_RATIO):
    """
    Produce `count` synthetic accesses spread uniformly over `num_cores` cores.

    With probability `false_sharing_probability` an access is aimed at a block
    another core touched recently, at a different word within the block, so a
    later write collides at line granularity. Other addresses are uniform over
    [0, address_range). Reads happen with probability `read_ratio`.
    The same seed and arguments always give the same sequence. `seed` may also
    be a numpy Generator, which is drawn from and advanced.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if num_cores < 1:
        raise ValueError(f"num_cores must be >= 1, got {num_cores}")
    if not 0.0 <= false_sharing_probability <= 1.0:
        raise ValueError(
            f"false_sharing_probability must be in [0, 1], got {false_sharing_probability}")
    if line_size < 1:
        raise ValueError(f"line_size must be >= 1, got {line_size}")
    if address_range < line_size:
        raise ValueError(f"address_range must be >= line_size, got {address_range}")
    if not 0.0 <= read_ratio <= 1.0:
        raise ValueError(f"read_ratio must be in [0, 1], got {read_ratio}")

    rng = np.random.default_rng(seed)
    recent = deque(maxlen=RECENT_WINDOW)
    accesses = []
    for step in range(count):
        core_id = int(rng.integers(0, num_cores))
        address = None
        if rng.random() < false_sharing_probability:
            address = _pick_false_sharing_address(rng, recent, core_id, line_size, address_range)
        if address is None:
            address = int(rng.integers(0, address_range))
        kind = AccessKind.READ if rng.random() < read_ratio else AccessKind.WRITE
        accesses.append(MemoryAccess(step=step, core_id=core_id, address=address, kind=kind))
        recent.append((core_id, block_tag(address, line_size), line_offset(address, line_size)))
    return accesses
