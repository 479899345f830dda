"""
Markov chain services: vocabulary, counting, tensor algebra and sampling.
"""

from .bijection import Bijection
from .counter import AtomicCounter, TransitionCounter
from .dist import Dist
from .errors import (
    DegenerateDistributionError,
    EmptyModelError,
    KeyNotFoundError,
    MarkovChainError,
    TensorTooLargeError,
)
from .markov import ChainSampler, MarkovChain, to_markov_chain
from .tensor import build_transition_tensor, disintegrate, sum_onto

__all__ = [
    "Bijection",
    "AtomicCounter",
    "TransitionCounter",
    "Dist",
    "DegenerateDistributionError",
    "EmptyModelError",
    "KeyNotFoundError",
    "MarkovChainError",
    "TensorTooLargeError",
    "ChainSampler",
    "MarkovChain",
    "to_markov_chain",
    "build_transition_tensor",
    "disintegrate",
    "sum_onto",
]
