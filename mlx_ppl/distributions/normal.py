"""Normal (Gaussian) distribution."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array
from mlx_ppl.distributions.transforms import real


class Normal(Distribution):
    """Normal (Gaussian) distribution.

    The probability density function is:
        p(x | μ, σ) = (1 / (σ√(2π))) exp(-(x - μ)² / (2σ²))

    Parameters
    ----------
    loc : float or mlx.core.array
        Mean (location parameter)
    scale : float or mlx.core.array
        Standard deviation (scale parameter), must be positive

    Examples
    --------
    >>> dist = Normal(0, 1)  # Standard normal
    >>> log_p = dist.log_prob(mx.array(0.0))  # Log prob at zero
    >>> samples = dist.sample(mx.random.key(0), shape=(1000,))
    """

    support = real

    def __init__(self, loc, scale):
        self.loc = as_array(loc)
        self.scale = as_array(scale)
        self._log_norm = -0.5 * mx.log(2 * mx.pi)

    def log_prob(self, value):
        """
        Compute log probability density.

        log p(x) = -0.5 * log(2π) - log(σ) - 0.5 * ((x - μ) / σ)²

        A non-positive scale yields ``-inf``.
        """
        value = as_array(value)
        var = self.scale ** 2
        log_prob = (
            self._log_norm
            - mx.log(self.scale)
            - 0.5 * ((value - self.loc) ** 2) / var
        )
        return mx.where(self.scale > 0, log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        """
        Sample from normal distribution.

        Uses MLX's built-in normal sampling with transformation:
        X = μ + σZ, where Z ~ N(0, 1)
        """
        shape = tuple(shape) or (self.loc * self.scale).shape
        return mx.random.normal(shape, key=key) * self.scale + self.loc

    def mean(self):
        return self.loc

    def variance(self):
        return self.scale ** 2

    def __repr__(self):
        if self.loc.size == 1 and self.scale.size == 1:
            return f"Normal(loc={float(self.loc):.3f}, scale={float(self.scale):.3f})"
        return f"Normal(shape={self.loc.shape})"
