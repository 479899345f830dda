"""
Markovian - variable-order Markov chains over dense probability tensors.

Counts windows of `memory` tokens, stores their joint distribution as an
n-dimensional numpy array and samples new sequences by conditioning it on
the most recent tokens.
"""

__version__ = "0.1.0"

from .services import (
    Bijection,
    ChainSampler,
    DegenerateDistributionError,
    Dist,
    EmptyModelError,
    KeyNotFoundError,
    MarkovChain,
    MarkovChainError,
    TensorTooLargeError,
    TransitionCounter,
    disintegrate,
    sum_onto,
    to_markov_chain,
)

__all__ = [
    "Bijection",
    "ChainSampler",
    "DegenerateDistributionError",
    "Dist",
    "EmptyModelError",
    "KeyNotFoundError",
    "MarkovChain",
    "MarkovChainError",
    "TensorTooLargeError",
    "TransitionCounter",
    "disintegrate",
    "sum_onto",
    "to_markov_chain",
]
