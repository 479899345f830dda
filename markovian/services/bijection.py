"""
One-to-one mapping between vocabulary tokens and tensor indices.
"""
from __future__ import annotations

import operator
from collections.abc import Mapping
from typing import Dict, Generic, Hashable, Iterable, Iterator, Tuple, TypeVar

from markovian.services.errors import KeyNotFoundError

T = TypeVar("T", bound=Hashable)


class Bijection(Mapping, Generic[T]):
    """
    Ranked vocabulary with O(1) lookups in both directions.

    Tokens map to 0..V-1 in the order given. Behaves as a read-only
    mapping from token to index.
    """

    def __init__(self, tokens: Iterable[T]):
        self._tokens: Tuple[T, ...] = tuple(tokens)
        self._index: Dict[T, int] = {t: i for i, t in enumerate(self._tokens)}
        if len(self._index) != len(self._tokens):
            raise ValueError("Bijection tokens must be distinct")

    @property
    def tokens(self) -> Tuple[T, ...]:
        return self._tokens

    def index_of(self, token: T) -> int:
        try:
            return self._index[token]
        except KeyError:
            raise KeyNotFoundError(f"token not in vocabulary: {token!r}") from None

    def token_of(self, index: int) -> T:
        if not self.has_index(index):
            raise KeyNotFoundError(f"index out of range [0, {len(self)}): {index!r}")
        return self._tokens[operator.index(index)]

    def has_index(self, index: int) -> bool:
        if isinstance(index, bool):
            return False
        try:
            i = operator.index(index)
        except TypeError:
            return False
        return 0 <= i < len(self._tokens)

    def __getitem__(self, token: T) -> int:
        return self.index_of(token)

    def __contains__(self, token: object) -> bool:
        try:
            return token in self._index
        except TypeError:
            return False

    def __iter__(self) -> Iterator[T]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        return f"Bijection(size={len(self)})"
