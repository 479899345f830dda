"""
Frequency counting for the transition tensor.

Every subsequence of length `memory` is treated as a single token and
counted. Counting is a commutative sum, so the per-offset work can be
spread over threads that all write into the same AtomicCounter.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Hashable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from markovian.config import settings

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T", bound=Hashable)


class AtomicCounter(Mapping):
    """
    Map from key to integer count with atomic add-and-fetch.

    Keys keep the order of their first increment.
    """

    def __init__(self, counts: Optional[Dict[K, int]] = None):
        self._lock = threading.Lock()
        self._counts: Dict[K, int] = dict(counts or {})

    def increment(self, key: K, delta: int = 1) -> int:
        """Add delta to key and return the new count."""
        with self._lock:
            value = self._counts.get(key, 0) + delta
            self._counts[key] = value
            return value

    def add_all(self, other: Mapping) -> "AtomicCounter":
        """Add every count of other into this counter."""
        snapshot = other.as_dict() if isinstance(other, AtomicCounter) else dict(other)
        with self._lock:
            for key, value in snapshot.items():
                self._counts[key] = self._counts.get(key, 0) + value
        return self

    def as_dict(self) -> Dict[K, int]:
        with self._lock:
            return dict(self._counts)

    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())

    def __getitem__(self, key: K) -> int:
        with self._lock:
            return self._counts[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self.as_dict())

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def __repr__(self) -> str:
        return f"AtomicCounter({self.as_dict()!r})"


def chunk_windows(tokens: Sequence[T], memory: int, offset: int) -> List[Tuple[T, ...]]:
    """
    Non-overlapping windows of exactly `memory` tokens starting at offset.

    A trailing chunk shorter than memory is dropped.
    """
    stop = offset + (len(tokens) - offset) // memory * memory
    return [tuple(tokens[i:i + memory]) for i in range(offset, stop, memory)]


class TransitionCounter(Mapping):
    """
    Raw token counts plus counts of every length-`memory` window.

    Windows are taken at each offset 0..memory-1, so overlapping windows
    are all represented and each is counted once. The counter itself
    reads as a mapping from window tuple to count.
    """

    def __init__(
        self,
        sequence: Iterable[T] = (),
        memory: int = 3,
        workers: Optional[int] = None,
    ):
        """
        Count a training sequence.

        Args:
            sequence: Training tokens, consumed eagerly
            memory: Window length (>= 1)
            workers: Threads used to count offsets (default: settings.COUNTER_WORKERS)
        """
        if memory < 1:
            raise ValueError(f"memory must be >= 1, got {memory}")

        self.memory = memory
        # Counts raw instances of T
        self.raw_counts = AtomicCounter()
        # Counts windows of exactly `memory` Ts
        self.window_counts = AtomicCounter()

        tokens = list(sequence)
        # Rank of each distinct token by first position in the training sequence
        self.first_seen: Dict[T, int] = {}
        for token in tokens:
            self.first_seen.setdefault(token, len(self.first_seen))

        workers = workers or settings.COUNTER_WORKERS
        offsets = range(min(memory, len(tokens)))

        if workers > 1 and len(offsets) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # list() re-raises the first worker failure
                list(executor.map(lambda o: self._count_offset(tokens, o), offsets))
        else:
            for offset in offsets:
                self._count_offset(tokens, offset)

        logger.debug(
            f"[Counter] Counted {len(tokens)} tokens into "
            f"{len(self.window_counts)} distinct windows (memory={memory}, workers={workers})"
        )

    def _count_offset(self, tokens: Sequence[T], offset: int) -> None:
        for window in chunk_windows(tokens, self.memory, offset):
            self.window_counts.increment(window)
            for token in window:
                self.raw_counts.increment(token)

    def merge(self, other: "TransitionCounter") -> "TransitionCounter":
        """
        Add both of other's counters into this one.

        Tokens new to this counter rank after every token it already has.
        """
        for token in other.first_seen:
            self.first_seen.setdefault(token, len(self.first_seen))
        self.raw_counts.add_all(other.raw_counts)
        self.window_counts.add_all(other.window_counts)
        return self

    def __getitem__(self, window: Tuple[T, ...]) -> int:
        return self.window_counts[window]

    def __iter__(self) -> Iterator[Tuple[T, ...]]:
        return iter(self.window_counts)

    def __len__(self) -> int:
        return len(self.window_counts)
