"""
Dense transition tensor and the two operations used to query it.

The tensor has rank `memory` and shape [V]*memory. Cell (i1, ..., im)
holds P(T1=t1, ..., Tm=tm) for the window t1..tm, estimated from window
counts and normalized once over all cells.
"""
from __future__ import annotations

import logging
from typing import Collection, Hashable, Mapping, Tuple

import numpy as np

from markovian.config import settings
from markovian.services.bijection import Bijection
from markovian.services.errors import EmptyModelError, TensorTooLargeError

logger = logging.getLogger(__name__)


def build_transition_tensor(
    dictionary: Bijection,
    window_counts: Mapping[Tuple[Hashable, ...], int],
    memory: int,
) -> np.ndarray:
    """
    Build the normalized joint tensor from window counts.

    Windows of the wrong length, or containing a token outside the
    dictionary, are skipped.

    Raises:
        TensorTooLargeError: if size ** memory exceeds settings.TENSOR_MAX_CELLS
        EmptyModelError: if no window survives, i.e. the total mass is zero
    """
    size = len(dictionary)
    cells = size ** memory
    if cells > settings.TENSOR_MAX_CELLS:
        raise TensorTooLargeError(
            f"tensor of {size}^{memory} = {cells} cells exceeds the limit of "
            f"{settings.TENSOR_MAX_CELLS}; lower memory or max_tokens"
        )
    if cells > settings.TENSOR_WARN_CELLS:
        logger.warning(
            f"[Tensor] Allocating dense tensor with {cells} cells "
            f"(vocabulary={size}, memory={memory})"
        )

    tensor = np.zeros((size,) * memory, dtype=np.float64)
    for window, count in window_counts.items():
        if len(window) != memory or not all(t in dictionary for t in window):
            continue
        tensor[tuple(dictionary.index_of(t) for t in window)] = count

    total = tensor.sum()
    if not total > 0:
        raise EmptyModelError(
            f"no windows of length {memory} over a vocabulary of {size} tokens"
        )

    # Normalize across all entries in tensor
    return tensor / total


def sum_onto(tensor: np.ndarray, dims: Collection[int] = (0,)) -> np.ndarray:
    """
    Marginalize out every axis not in dims.

    Produces a rank-len(dims) tensor whose axes are the kept ones, in
    their original order.
    """
    result, kept = tensor, 0
    for axis in range(tensor.ndim):
        if axis in dims:
            kept += 1
        else:
            result = result.sum(axis=kept)
    return np.asarray(result)


def disintegrate(tensor: np.ndarray, dim_to_idx: Mapping[int, int]) -> np.ndarray:
    """
    Slice the tensor at a fixed index along each axis in dim_to_idx.

    Each entry picks an (N-1)-dimensional hyperplane; intersecting them
    leaves a rank-(N - len(dim_to_idx)) fiber over the free axes. The
    fiber is proportional to the joint of the free positions given the
    fixed ones and still has to be normalized before sampling.
    """
    result, free = tensor, 0
    for axis in range(tensor.ndim):
        if axis in dim_to_idx:
            result = np.take(result, dim_to_idx[axis], axis=free)
        else:
            free += 1
    return np.asarray(result)
