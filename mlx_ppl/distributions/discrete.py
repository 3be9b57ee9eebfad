"""Poisson and Bernoulli distributions."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array, numpy_rng
from mlx_ppl.distributions.special import lgamma
from mlx_ppl.distributions.transforms import boolean, nonnegative_integer


class Poisson(Distribution):
    """Poisson distribution over event counts.

    log p(k | λ) = k log λ - λ - log Γ(k + 1)

    Parameters
    ----------
    rate : float or array_like
        Expected number of events, must be positive.
    """

    support = nonnegative_integer

    def __init__(self, rate):
        self.rate = as_array(rate)

    def log_prob(self, value):
        value = as_array(value).astype(mx.float32)
        valid = (value >= 0) & (mx.floor(value) == value)
        safe = mx.where(valid, value, mx.zeros_like(value))
        log_prob = safe * mx.log(self.rate) - self.rate - lgamma(safe + 1)
        return mx.where(valid, log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        rng = numpy_rng(key)
        shape = tuple(shape) or self.rate.shape
        return mx.array(rng.poisson(float(self.rate), size=shape).astype("int32"))

    def mean(self):
        return self.rate

    def variance(self):
        return self.rate

    def __repr__(self):
        return f"Poisson(rate={float(self.rate):.3f})"


class Bernoulli(Distribution):
    """Bernoulli distribution on {0, 1} with success probability ``p``."""

    support = boolean

    def __init__(self, p):
        self.p = as_array(p)

    def log_prob(self, value):
        value = as_array(value).astype(mx.float32)
        log_prob = mx.where(value == 1, mx.log(self.p), mx.log1p(-self.p))
        return mx.where((value == 0) | (value == 1), log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        shape = tuple(shape) or self.p.shape
        return (mx.random.uniform(shape=shape, key=key) < self.p).astype(mx.int32)

    def mean(self):
        return self.p

    def variance(self):
        return self.p * (1 - self.p)

    def __repr__(self):
        return f"Bernoulli(p={float(self.p):.3f})"
