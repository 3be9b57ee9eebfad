"""Categorical distribution."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array
from mlx_ppl.distributions.transforms import IntegerInterval


class Categorical(Distribution):
    """Categorical distribution.

    The Categorical distribution is a discrete probability distribution for a random
    variable that can take one of K possible outcomes. It's commonly used for
    classification, choice modeling, and discrete outcomes.

    Parameters
    ----------
    probs : array_like, optional
        Probabilities for each category. Normalized to sum to 1.
        Either probs or logits must be specified, but not both.
    logits : array_like, optional
        Unnormalized log probabilities. Will be normalized via log-softmax.
        Either probs or logits must be specified, but not both.

    Examples
    --------
    >>> from mlx_ppl import Categorical
    >>>
    >>> # Favoring first category
    >>> cat = Categorical(probs=[0.7, 0.2, 0.1])
    >>>
    >>> # Using logits (unnormalized)
    >>> cat = Categorical(logits=[2.0, 1.0, 0.5])
    """

    def __init__(self, probs=None, logits=None):
        if probs is None and logits is None:
            raise ValueError("Either probs or logits must be specified")
        if probs is not None and logits is not None:
            raise ValueError("Only one of probs or logits can be specified")

        if probs is not None:
            self.probs = as_array(probs)
            # Normalize to ensure sum to 1
            self.probs = self.probs / mx.sum(self.probs)
            self.logits = mx.log(self.probs)
        else:
            logits = as_array(logits)
            self.logits = logits - mx.logsumexp(logits)
            self.probs = mx.exp(self.logits)

        self.num_categories = self.probs.shape[0]

    @property
    def support(self):
        return IntegerInterval(0, self.num_categories - 1)

    def log_prob(self, value):
        """Log probability mass of category index ``value`` (0 to K-1)."""
        value = as_array(value).astype(mx.int32)

        valid = (value >= 0) & (value < self.num_categories)
        safe = mx.where(valid, value, mx.zeros_like(value))
        return mx.where(valid, self.logits[safe], mx.array(-mx.inf))

    def sample(self, key, shape=()):
        """Draw category indices by inverting the cumulative probabilities."""
        u = mx.random.uniform(shape=shape, key=key)
        cumsum = mx.cumsum(self.probs)

        if len(shape) == 0:
            sample = mx.sum((u > cumsum).astype(mx.int32))
        else:
            u_expanded = mx.expand_dims(u, -1)
            sample = mx.sum((u_expanded > cumsum).astype(mx.int32), axis=-1)

        return mx.minimum(sample, self.num_categories - 1)

    def mean(self):
        return mx.sum(mx.arange(self.num_categories) * self.probs)

    def variance(self):
        k = mx.arange(self.num_categories)
        return mx.sum(k ** 2 * self.probs) - self.mean() ** 2

    def mode(self):
        """Most probable category."""
        return mx.argmax(self.probs)

    def entropy(self):
        """Entropy: -sum(p * log(p)), skipping zero-probability categories."""
        log_probs = mx.where(self.probs > 0, mx.log(self.probs), mx.array(0.0))
        return -mx.sum(self.probs * log_probs)

    def __repr__(self):
        return f"Categorical(num_categories={self.num_categories})"
