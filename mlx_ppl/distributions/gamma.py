"""Gamma and inverse-gamma distributions."""

import mlx.core as mx
from mlx_ppl.distributions.base import Distribution, as_array, numpy_rng
from mlx_ppl.distributions.special import lgamma
from mlx_ppl.distributions.transforms import positive


class Gamma(Distribution):
    """Gamma distribution.

    The Gamma distribution is a continuous probability distribution for positive real numbers.
    It's commonly used for modeling waiting times, rates, and positive continuous variables.

    Parameters
    ----------
    alpha : float or array_like
        Shape parameter, must be positive
    beta : float or array_like, optional
        Rate parameter (inverse scale), must be positive. Default: 1.0

    Notes
    -----
    This uses the shape-rate parameterization. The scale parameter is 1/beta.
    Mean = alpha / beta
    Variance = alpha / beta^2

    Examples
    --------
    >>> from mlx_ppl import Gamma
    >>>
    >>> # Exponential-like (shape=1)
    >>> rate_prior = Gamma(1, 1)
    >>>
    >>> # More concentrated around mean
    >>> rate_prior = Gamma(10, 2)  # mean = 5
    """

    support = positive

    def __init__(self, alpha, beta=1.0):
        self.alpha = as_array(alpha)
        self.beta = as_array(beta)

    def log_prob(self, value):
        """Compute log probability density.

        log PDF: alpha*log(beta) + (alpha-1)*log(x) - beta*x - log Γ(alpha)
        """
        value = as_array(value)
        log_prob = (
            self.alpha * mx.log(self.beta) - lgamma(self.alpha) +
            (self.alpha - 1) * mx.log(value) -
            self.beta * value
        )
        return mx.where(value > 0, log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        """Draw samples through numpy (shape-scale parameterization)."""
        rng = numpy_rng(key)
        shape = tuple(shape) or self.alpha.shape
        scale = 1.0 / float(self.beta)
        return as_array(rng.gamma(float(self.alpha), scale=scale, size=shape))

    def mean(self):
        return self.alpha / self.beta

    def variance(self):
        return self.alpha / (self.beta ** 2)

    def __repr__(self):
        return f"Gamma(alpha={float(self.alpha):.3f}, beta={float(self.beta):.3f})"


class InverseGamma(Distribution):
    """Inverse-gamma distribution, the law of 1/X for X ~ Gamma(alpha, beta).

    The usual conjugate prior on a Normal variance:
        p(x | α, β) = β^α / Γ(α) x^(-α-1) exp(-β / x)   for x > 0

    Mean = β / (α - 1) for α > 1, variance = β² / ((α-1)² (α-2)) for α > 2.
    """

    support = positive

    def __init__(self, alpha, beta=1.0):
        self.alpha = as_array(alpha)
        self.beta = as_array(beta)

    def log_prob(self, value):
        value = as_array(value)
        log_prob = (
            self.alpha * mx.log(self.beta) - lgamma(self.alpha) -
            (self.alpha + 1) * mx.log(value) -
            self.beta / value
        )
        return mx.where(value > 0, log_prob, mx.array(-mx.inf))

    def sample(self, key, shape=()):
        rng = numpy_rng(key)
        shape = tuple(shape) or self.alpha.shape
        draws = rng.gamma(float(self.alpha), scale=1.0 / float(self.beta), size=shape)
        return as_array(1.0 / draws)

    def mean(self):
        return mx.where(self.alpha > 1, self.beta / (self.alpha - 1), mx.array(mx.inf))

    def variance(self):
        var = self.beta ** 2 / ((self.alpha - 1) ** 2 * (self.alpha - 2))
        return mx.where(self.alpha > 2, var, mx.array(mx.inf))

    def __repr__(self):
        return f"InverseGamma(alpha={float(self.alpha):.3f}, beta={float(self.beta):.3f})"
