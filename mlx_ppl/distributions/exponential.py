"""Exponential and uniform distributions."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array
from mlx_ppl.distributions.transforms import Interval, positive


class Exponential(Distribution):
    """Exponential distribution.

    The Exponential distribution is a continuous probability distribution for positive
    real numbers. It's commonly used for modeling waiting times, time until events,
    and rates.

    This is a special case of the Gamma distribution with shape parameter alpha = 1.

    Parameters
    ----------
    rate : float or array_like
        Rate parameter (lambda), must be positive. Higher rate = shorter wait times.

    Notes
    -----
    Mean = 1 / rate
    Variance = 1 / rate^2

    Examples
    --------
    >>> from mlx_ppl import Exponential
    >>>
    >>> # Average wait time of 2 units (rate = 0.5)
    >>> wait_time = Exponential(0.5)
    """

    support = positive

    def __init__(self, rate):
        self.rate = as_array(rate)

    def log_prob(self, value):
        """Compute log probability density.

        log PDF: log(lambda) - lambda * x
        """
        value = as_array(value)
        log_prob = mx.log(self.rate) - self.rate * value
        return mx.where(value >= 0, log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        """Inverse CDF sampling: -log(1 - u) / lambda."""
        shape = tuple(shape) or self.rate.shape
        u = mx.random.uniform(shape=shape, key=key)
        return -mx.log(1 - u) / self.rate

    def mean(self):
        return 1.0 / self.rate

    def variance(self):
        return 1.0 / (self.rate ** 2)

    def __repr__(self):
        return f"Exponential(rate={float(self.rate):.3f})"


class Uniform(Distribution):
    """Continuous uniform distribution on the open interval (low, high).

    The bounds may depend on other random variables; the support (and so
    the bijection used by gradient-based samplers) is rebuilt from the
    current bounds on every model execution.
    """

    def __init__(self, low=0.0, high=1.0):
        self.low = as_array(low)
        self.high = as_array(high)

    @property
    def support(self):
        return Interval(self.low, self.high)

    def log_prob(self, value):
        value = as_array(value)
        log_prob = -mx.log(self.high - self.low) + mx.zeros_like(value)
        return mx.where((value > self.low) & (value < self.high), log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        shape = tuple(shape) or (self.low + self.high).shape
        return mx.random.uniform(self.low, self.high, shape=shape, key=key)

    def mean(self):
        return 0.5 * (self.low + self.high)

    def variance(self):
        return (self.high - self.low) ** 2 / 12.0

    def __repr__(self):
        return f"Uniform(low={float(self.low):.3f}, high={float(self.high):.3f})"
