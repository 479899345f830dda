"""
Small concurrency and statistics helpers used around the chain.
"""
from __future__ import annotations

import itertools
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

import numpy as np

from markovian.config import settings

A = TypeVar("A")
B = TypeVar("B")


def pmap(
    items: Iterable[A],
    fn: Callable[[A], B],
    max_workers: Optional[int] = None,
) -> List[B]:
    """
    Apply fn to every item concurrently.

    Results come back in input order. If any call raises, the first
    failing item (in input order) re-raises in the caller.

    Args:
        items: Inputs to map over
        fn: Function applied to each input
        max_workers: Thread pool size (default: settings.PMAP_MAX_WORKERS)
    """
    items = list(items)
    if not items:
        return []

    workers = max_workers or settings.PMAP_MAX_WORKERS
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(fn, items))


def variance(values: Sequence[float]) -> float:
    """Population variance of values."""
    if len(values) == 0:
        raise ValueError("variance of an empty sequence")
    return float(np.var(np.asarray(values, dtype=float)))


def all_masks(items: Sequence[A]) -> List[List[Optional[A]]]:
    """
    All vertices of the Hamming cube over items.

    Each result keeps or hides (None) every position, so a context of
    length n yields 2**n partially observed variants, starting with the
    fully observed one.
    """
    return [
        [None if hidden else item for item, hidden in zip(items, mask)]
        for mask in itertools.product((False, True), repeat=len(items))
    ]
