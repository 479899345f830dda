"""
Variable-order Markov chain backed by a dense transition tensor.

Training counts every window of `memory` tokens. The top `max_tokens`
tokens form the vocabulary, the window counts become a normalized joint
tensor over that vocabulary, and generation conditions the tensor on
the last `memory - 1` tokens to get the next-token distribution.
Derived state is rebuilt lazily after every merge.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any,
    Collection,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

import numpy as np

from markovian.config import settings
from markovian.services.bijection import Bijection
from markovian.services.counter import TransitionCounter
from markovian.services.dist import Dist
from markovian.services.errors import DegenerateDistributionError, KeyNotFoundError
from markovian.services.tensor import build_transition_tensor, disintegrate, sum_onto

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


@dataclass
class _DerivedState:
    """Everything computed from the counter during one invalidation epoch."""
    epoch: int
    dictionary: Bijection
    tensor: Optional[np.ndarray] = None
    seed_dist: Optional[Dist] = None
    # Maps the coordinates of a transition tensor fiber to a memoized distribution
    dists: Dict[Tuple[int, ...], Dist] = field(default_factory=dict)


class MarkovChain(Generic[T]):
    """
    Memory-n Markov chain over an arbitrary token alphabet.

    The transition tensor gives the probability of observing the window
    t1 t2 ... tn:

        P(T1=t1, T2=t2, ..., Tn=tn)

    where n = memory. It is a hypercube of shape [size]^n indexed by
    the dictionary.

    Usage:
        chain = MarkovChain(train="abracadabra", memory=2)
        text = "".join(itertools.islice(chain.sample(), 20))
    """

    def __init__(
        self,
        train: Iterable[T] = (),
        memory: Optional[int] = None,
        max_tokens: Optional[int] = None,
        counter: Optional[TransitionCounter] = None,
        workers: Optional[int] = None,
    ):
        """
        Count the training sequence.

        Args:
            train: Training tokens, consumed eagerly
            memory: Window length n (default: settings.MARKOV_MEMORY)
            max_tokens: Vocabulary cap (default: settings.MARKOV_MAX_TOKENS)
            counter: Prebuilt counter to adopt instead of counting train
            workers: Counting threads (default: settings.COUNTER_WORKERS)
        """
        if memory is None:
            memory = counter.memory if counter is not None else settings.MARKOV_MEMORY
        if memory < 1:
            raise ValueError(f"memory must be >= 1, got {memory}")
        if counter is not None and counter.memory != memory:
            raise ValueError(f"counter has memory {counter.memory}, chain asked for {memory}")
        if max_tokens is None:
            max_tokens = settings.MARKOV_MAX_TOKENS
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {max_tokens}")

        self.memory = memory
        self.max_tokens = max_tokens
        self.counter = counter if counter is not None else TransitionCounter(train, memory, workers)

        self._lock = threading.RLock()
        self._epoch = 0
        self._state: Optional[_DerivedState] = None

    # --- derived state ---
    def _current(self) -> _DerivedState:
        """Return derived state for the current epoch. Caller holds the lock."""
        if self._state is None or self._state.epoch != self._epoch:
            self._state = _DerivedState(epoch=self._epoch, dictionary=self._build_dictionary())
        return self._state

    def _build_dictionary(self) -> Bijection:
        # Take top K most frequent tokens, ties broken by first position in training
        first_seen = self.counter.first_seen
        ranked = sorted(
            self.counter.raw_counts.as_dict().items(),
            key=lambda kv: (-kv[1], first_seen.get(kv[0], len(first_seen))),
        )
        dictionary = Bijection(token for token, _ in ranked[: self.max_tokens])
        logger.info(
            f"[Markov] Built vocabulary of {len(dictionary)} tokens "
            f"from {len(ranked)} distinct (memory={self.memory}, epoch={self._epoch})"
        )
        return dictionary

    def _tensor(self, state: _DerivedState) -> np.ndarray:
        if state.tensor is None:
            tensor = build_transition_tensor(
                state.dictionary, self.counter.window_counts.as_dict(), self.memory
            )
            tensor.setflags(write=False)
            state.tensor = tensor
        return state.tensor

    def _conditional(self, state: _DerivedState, context: Tuple[int, ...]) -> Dist:
        dist = state.dists.get(context)
        if dist is None:
            # Intersect conditional slices to produce a 1D count fiber
            fiber = disintegrate(self._tensor(state), dict(enumerate(context)))
            try:
                dist = Dist(fiber)
            except DegenerateDistributionError as e:
                raise DegenerateDistributionError(
                    f"context {context} has no observed continuation"
                ) from e
            state.dists[context] = dist
        return dist

    @property
    def dictionary(self) -> Bijection:
        with self._lock:
            return self._current().dictionary

    @property
    def size(self) -> int:
        return len(self.dictionary)

    @property
    def tensor(self) -> np.ndarray:
        """Read-only joint probability tensor of shape [size]*memory."""
        with self._lock:
            return self._tensor(self._current())

    @property
    def dists(self) -> Mapping[Tuple[int, ...], Dist]:
        """Read-only view of the conditional distribution cache."""
        with self._lock:
            return MappingProxyType(self._current().dists)

    # --- queries ---
    def marginal(self, dims: Collection[int] = (0,)) -> np.ndarray:
        """Joint distribution of the window positions in dims."""
        return sum_onto(self.tensor, dims)

    def conditional(self, context: Sequence[int]) -> Dist:
        """
        Next-index distribution given memory-1 vocabulary indices.

        Results are cached per context until the next merge.
        """
        key = tuple(int(i) for i in context)
        if len(key) != self.memory - 1:
            raise ValueError(f"context must have {self.memory - 1} indices, got {len(key)}")
        with self._lock:
            state = self._current()
            for i in key:
                if not state.dictionary.has_index(i):
                    raise KeyNotFoundError(f"index out of range [0, {len(state.dictionary)}): {i}")
            return self._conditional(state, key)

    def transition(self, token: T) -> Dist:
        """First-order distribution of the token that follows token."""
        if self.memory < 2:
            raise ValueError("transition needs memory >= 2")
        with self._lock:
            state = self._current()
            fiber = disintegrate(self._tensor(state), {0: state.dictionary.index_of(token)})
            return Dist(sum_onto(fiber, (0,)))

    def predict(self, context: Sequence[Optional[T]]) -> Dist:
        """
        Next-token distribution from a partially known window.

        Entries of context that are None are summed out instead of
        fixed, so all_masks(window) gives progressively weaker contexts.
        """
        if len(context) != self.memory - 1:
            raise ValueError(f"context must have {self.memory - 1} tokens, got {len(context)}")
        with self._lock:
            state = self._current()
            fixed = {
                axis: state.dictionary.index_of(token)
                for axis, token in enumerate(context)
                if token is not None
            }
            if len(fixed) == len(context):
                return self._conditional(state, tuple(fixed[a] for a in range(len(context))))
            fiber = disintegrate(self._tensor(state), fixed)
            return Dist(sum_onto(fiber, (fiber.ndim - 1,)))

    # --- generation ---
    def _seed_token(self, rng: Optional[Any]) -> T:
        with self._lock:
            state = self._current()
            if state.seed_dist is None:
                state.seed_dist = Dist(sum_onto(self._tensor(state), (0,)))
            return state.dictionary.token_of(state.seed_dist.sample(rng))

    def _next_token(self, window: Tuple[T, ...], rng: Optional[Any]) -> T:
        with self._lock:
            state = self._current()
            idxs = tuple(state.dictionary.index_of(t) for t in window)
            dist = self._conditional(state, idxs)
            return state.dictionary.token_of(dist.sample(rng))

    def sample(self, rng: Optional[Any] = None, prefix: Optional[Iterable[T]] = None) -> "ChainSampler[T]":
        """
        Start an unbounded lazy stream of generated tokens.

        Args:
            rng: Random source with a random() method (default: random module)
            prefix: Tokens whose last memory-1 entries seed the window;
                by default the window is drawn from the axis-0 marginal
        """
        return ChainSampler(self, rng=rng, prefix=prefix)

    # --- composition ---
    def merge(self, other: "MarkovChain[T]") -> "MarkovChain[T]":
        """
        Add other's counts into this chain and invalidate derived state.

        other is left unchanged.
        """
        if not isinstance(other, MarkovChain):
            raise TypeError(f"cannot merge {type(other).__name__} into MarkovChain")
        with self._lock:
            self.counter.merge(other.counter)
            self._epoch += 1
            logger.info(
                f"[Markov] Merged {other.counter.raw_counts.total()} token counts "
                f"(epoch={self._epoch})"
            )
        return self

    def __iadd__(self, other: "MarkovChain[T]") -> "MarkovChain[T]":
        return self.merge(other)

    def __repr__(self) -> str:
        return (
            f"MarkovChain(memory={self.memory}, max_tokens={self.max_tokens}, "
            f"windows={len(self.counter)})"
        )


class ChainSampler(Iterator[T]):
    """
    Generation state machine for one stream.

    Holds the trailing window of memory-1 tokens. Each advance() samples
    the next token from the chain's conditional distribution for that
    window, slides the window and returns the token. A new stream is a
    new sampler; an existing one is never rewound.
    """

    def __init__(
        self,
        chain: MarkovChain[T],
        rng: Optional[Any] = None,
        prefix: Optional[Iterable[T]] = None,
    ):
        self.chain = chain
        self.rng = rng
        width = chain.memory - 1

        if prefix is None:
            # Independent draws from the axis-0 marginal
            tokens = [chain._seed_token(rng) for _ in range(width)]
        else:
            tokens = list(prefix)[-width:] if width else []
            if len(tokens) != width:
                raise ValueError(f"prefix must have at least {width} tokens, got {len(tokens)}")
            dictionary = chain.dictionary
            for token in tokens:
                dictionary.index_of(token)

        self.window: deque = deque(tokens, maxlen=width)
        self.emitted = 0

    def advance(self) -> T:
        token = self.chain._next_token(tuple(self.window), self.rng)
        self.window.append(token)
        self.emitted += 1
        return token

    def __iter__(self) -> "ChainSampler[T]":
        return self

    def __next__(self) -> T:
        return self.advance()


def to_markov_chain(sequence: Iterable[T], memory: int = 3) -> MarkovChain[T]:
    """Train a chain on sequence with default vocabulary cap."""
    return MarkovChain(train=sequence, memory=memory)
