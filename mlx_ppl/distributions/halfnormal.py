"""Half-normal distribution (for positive parameters)."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array
from mlx_ppl.distributions.transforms import positive


class HalfNormal(Distribution):
    """Half-normal distribution.

    The half-normal is the distribution of |X| where X ~ Normal(0, σ).
    Useful for positive parameters like standard deviations.

    The probability density function is:
        p(x | σ) = (2 / (σ√(2π))) exp(-x² / (2σ²)) for x >= 0

    Parameters
    ----------
    scale : float or mlx.core.array
        Scale parameter, must be positive

    Examples
    --------
    >>> dist = HalfNormal(5.0)  # Half-normal with scale 5
    >>> log_p = dist.log_prob(mx.array(2.0))
    >>> samples = dist.sample(mx.random.key(0), shape=(1000,))
    """

    support = positive

    def __init__(self, scale):
        self.scale = as_array(scale)
        self._log_norm = -0.5 * mx.log(2 * mx.pi)
        self._log2 = mx.log(mx.array(2.0))

    def log_prob(self, value):
        """
        Compute log probability density.

        log p(x) = log(2) - 0.5*log(2π) - log(σ) - 0.5*(x/σ)²  for x >= 0
                 = -∞  for x < 0
        """
        value = as_array(value)
        var = self.scale ** 2

        log_prob_pos = (
            self._log2
            + self._log_norm
            - mx.log(self.scale)
            - 0.5 * (value ** 2) / var
        )

        # Return -inf for negative values (zero probability)
        return mx.where(value >= 0, log_prob_pos, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        """Sample |Z * σ| where Z ~ N(0, 1)."""
        shape = tuple(shape) or self.scale.shape
        return mx.abs(mx.random.normal(shape, key=key) * self.scale)

    def mean(self):
        return self.scale * mx.sqrt(mx.array(2.0 / mx.pi))

    def variance(self):
        return self.scale ** 2 * (1.0 - 2.0 / mx.pi)

    def __repr__(self):
        return f"HalfNormal(scale={float(self.scale):.3f})"
