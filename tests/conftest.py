"""
Shared pytest fixtures for chain tests.
"""
import itertools
import random
from typing import List

import pytest


class FixedRandom:
    """Random source that always returns the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def alternating() -> List[str]:
    """x y x y x y: two tokens, equal frequency."""
    return ["x", "y"] * 3


@pytest.fixture
def cyclic_text() -> str:
    """Deterministic cycle a -> b -> c -> a."""
    return "abc" * 10


@pytest.fixture
def cube_corpus() -> str:
    """
    Every length-3 word over {a, b}, concatenated and repeated.

    Windows of length 3 at offset 0 are exactly these words, so every
    2-token context has both continuations.
    """
    words = ["".join(p) for p in itertools.product("ab", repeat=3)]
    return "".join(words) * 4


@pytest.fixture
def skewed_text() -> str:
    """Tokens with distinct frequencies a > b > c."""
    return "aaabbc" * 20


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def fixed_random():
    """Factory for constant random sources."""
    return FixedRandom
