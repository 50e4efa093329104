#!/usr/bin/env python3
"""
Batch partitioning for record analysis.

Splits an ordered record sequence into order-preserving batches and tracks
the remaining work as index ranges so the batch size can change mid-run.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Sequence, TypeVar

T = TypeVar('T')


def _check_batch_size(batch_size: int) -> None:
    if batch_size < 1:
        raise ValueError(f"batch_size must be a positive integer; got {batch_size}")


def partition(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """
    Split items into consecutive batches of at most batch_size.

    Concatenating the returned batches reproduces the input exactly once,
    in order. Only the last batch may be shorter.
    """
    _check_batch_size(batch_size)
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


def batch_count(item_count: int, batch_size: int) -> int:
    """Number of batches partition() yields for item_count items."""
    _check_batch_size(batch_size)
    return math.ceil(item_count / batch_size) if item_count > 0 else 0


@dataclass(frozen=True)
class RecordRange:
    """Half-open index range [start, end) into the original record list."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def split(self, size: int) -> List['RecordRange']:
        """Re-partition this range into sub-ranges of at most size records."""
        _check_batch_size(size)
        return [RecordRange(i, min(i + size, self.end)) for i in range(self.start, self.end, size)]


class WorkQueue:
    """
    Remaining record ranges, consumed front to back.

    next_unit() hands out the head range truncated to the current batch size
    and keeps the rest queued, so a size change re-partitions only what has
    not been processed yet.
    """

    def __init__(self, record_count: int, batch_size: int):
        self._ranges: Deque[RecordRange] = deque(RecordRange(0, record_count).split(batch_size)) if record_count else deque()

    def __bool__(self) -> bool:
        return bool(self._ranges)

    @property
    def remaining_records(self) -> int:
        return sum(len(r) for r in self._ranges)

    def estimated_batches(self, batch_size: int) -> int:
        return batch_count(self.remaining_records, batch_size)

    def next_unit(self, batch_size: int) -> RecordRange:
        """Pop the next unit of work, at most batch_size records long."""
        head = self._ranges.popleft()
        if len(head) <= batch_size:
            return head
        parts = head.split(batch_size)
        self._ranges.extendleft(reversed(parts[1:]))
        return parts[0]

    def push_front(self, unit: RecordRange) -> None:
        """Return a unit to the head of the queue for reprocessing."""
        self._ranges.appendleft(unit)
