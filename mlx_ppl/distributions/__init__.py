"""Probability distribution implementations for MLX-PPL."""

from mlx_ppl.distributions.base import Distribution
from mlx_ppl.distributions.normal import Normal
from mlx_ppl.distributions.halfnormal import HalfNormal
from mlx_ppl.distributions.beta import Beta
from mlx_ppl.distributions.gamma import Gamma, InverseGamma
from mlx_ppl.distributions.exponential import Exponential, Uniform
from mlx_ppl.distributions.categorical import Categorical
from mlx_ppl.distributions.discrete import Bernoulli, Poisson

__all__ = [
    "Distribution",
    "Normal",
    "HalfNormal",
    "Beta",
    "Gamma",
    "InverseGamma",
    "Exponential",
    "Uniform",
    "Categorical",
    "Poisson",
    "Bernoulli",
]
