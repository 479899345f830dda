"""
Errors raised by the Markov chain services.

Building a vocabulary, tensor or distribution from data that carries no
probability mass is unrecoverable for that chain, so these are raised
eagerly instead of letting NaNs flow into sampling.
"""


class MarkovChainError(Exception):
    """Base class for chain failures."""


class EmptyModelError(MarkovChainError, ValueError):
    """No window survived vocabulary filtering, so the tensor cannot be normalized."""


class DegenerateDistributionError(MarkovChainError, ValueError):
    """A distribution was built from counts with no usable mass."""


class KeyNotFoundError(MarkovChainError, KeyError):
    """A token or index outside the vocabulary was looked up."""


class TensorTooLargeError(MarkovChainError, ValueError):
    """The dense tensor for this vocabulary and memory exceeds the configured cell limit."""
