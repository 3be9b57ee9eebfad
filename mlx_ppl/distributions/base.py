"""Base class for probability distributions."""

import mlx.core as mx
import numpy as np

from mlx_ppl.distributions.transforms import biject_to, real


def as_array(value):
    """Convert a scalar, list or numpy array to an MLX array.

    MLX arrays pass through untouched so gradients keep flowing. Floating
    point input is stored as float32.
    """
    if isinstance(value, mx.array):
        return value
    value = np.asarray(value)
    if np.issubdtype(value.dtype, np.floating):
        value = value.astype(np.float32)
    elif value.dtype == np.bool_:
        value = value.astype(np.int32)
    return mx.array(value)


def numpy_rng(key):
    """Derive a numpy Generator from an MLX random key.

    Used by families MLX cannot sample natively (gamma, beta, poisson).
    """
    seed = int(mx.random.randint(0, 2**31 - 1, key=key))
    return np.random.default_rng(seed)


class Distribution:
    """Base class for all probability distributions.

    All distributions must implement:
    - log_prob(value): Compute log probability density/mass
    - sample(key, shape): Draw samples from the distribution

    Subclasses also declare ``support`` (a constraint from
    :mod:`mlx_ppl.distributions.transforms`), which decides the bijection
    gradient-based samplers use to move the variable to unconstrained space.
    """

    support = real

    @property
    def is_discrete(self):
        return self.support.is_discrete

    def transform(self):
        """Bijection from the support to the real line."""
        return biject_to(self.support)

    def log_prob(self, value):
        """
        Compute log probability density or mass function.

        Parameters
        ----------
        value : mlx.core.array or float
            Value(s) at which to evaluate log probability

        Returns
        -------
        log_prob : mlx.core.array
            Log probability at the given value(s), ``-inf`` outside the support
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement log_prob()"
        )

    def sample(self, key, shape=()):
        """
        Draw samples from the distribution.

        Parameters
        ----------
        key : mlx.core.array
            Random key for sampling
        shape : tuple, optional
            Shape of samples to draw

        Returns
        -------
        samples : mlx.core.array
            Samples from the distribution
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement sample()"
        )

    def mean(self):
        raise NotImplementedError(
            f"{self.__class__.__name__} does not define mean()"
        )

    def variance(self):
        raise NotImplementedError(
            f"{self.__class__.__name__} does not define variance()"
        )

    def __repr__(self):
        """String representation of the distribution."""
        return f"{self.__class__.__name__}()"
