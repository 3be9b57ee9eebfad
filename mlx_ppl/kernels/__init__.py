"""MCMC and particle samplers."""

from mlx_ppl.kernels.base import Sampler
from mlx_ppl.kernels.prior import Importance, Prior
from mlx_ppl.kernels.metropolis import MH
from mlx_ppl.kernels.hmc import HMC, HMCDA
from mlx_ppl.kernels.nuts import NUTS
from mlx_ppl.kernels.smc import PG, SMC, ParticleArena
from mlx_ppl.kernels.gibbs import Gibbs

__all__ = [
    "Sampler",
    "Prior",
    "Importance",
    "MH",
    "HMC",
    "HMCDA",
    "NUTS",
    "SMC",
    "PG",
    "ParticleArena",
    "Gibbs",
]
