"""Beta distribution."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array, numpy_rng
from mlx_ppl.distributions.special import lgamma
from mlx_ppl.distributions.transforms import unit_interval


class Beta(Distribution):
    """Beta distribution.

    The Beta distribution is a continuous probability distribution on the interval (0, 1).
    It's commonly used for modeling probabilities, proportions, and rates.

    Parameters
    ----------
    alpha : float or array_like
        First shape parameter (concentration1), must be positive
    beta : float or array_like
        Second shape parameter (concentration2), must be positive

    Examples
    --------
    >>> from mlx_ppl import Beta
    >>>
    >>> # Uniform prior on [0, 1]
    >>> prior = Beta(1, 1)
    >>>
    >>> # Prior favoring high probabilities
    >>> prior = Beta(8, 2)
    """

    support = unit_interval

    def __init__(self, alpha, beta):
        self.alpha = as_array(alpha)
        self.beta = as_array(beta)

    def log_prob(self, value):
        """Compute log probability density.

        log PDF: (alpha-1)*log(x) + (beta-1)*log(1-x) - log B(alpha, beta)
        with log B(a, b) = log Γ(a) + log Γ(b) - log Γ(a+b).
        """
        value = as_array(value)
        log_beta_const = (
            lgamma(self.alpha) + lgamma(self.beta) - lgamma(self.alpha + self.beta)
        )
        log_prob = (
            (self.alpha - 1) * mx.log(value) +
            (self.beta - 1) * mx.log(1 - value) -
            log_beta_const
        )

        # Return -inf for values outside (0, 1)
        return mx.where(
            (value > 0) & (value < 1),
            log_prob,
            mx.array(-mx.inf)
        )

    def sample(self, key, shape=()):
        """Draw samples from the distribution.

        MLX has no beta sampler, so this goes through numpy seeded from the key.
        """
        rng = numpy_rng(key)
        shape = tuple(shape) or self.alpha.shape
        samples_np = rng.beta(float(self.alpha), float(self.beta), size=shape)
        return as_array(samples_np)

    def mean(self):
        return self.alpha / (self.alpha + self.beta)

    def variance(self):
        ab_sum = self.alpha + self.beta
        return (self.alpha * self.beta) / (ab_sum ** 2 * (ab_sum + 1))

    def __repr__(self):
        return f"Beta(alpha={float(self.alpha):.3f}, beta={float(self.beta):.3f})"
