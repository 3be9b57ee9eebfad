"""Inference drivers, chains and diagnostics."""

from mlx_ppl.inference.chain import Chain, MultiChain, merge
from mlx_ppl.inference.diagnostics import effective_sample_size, split_rhat
from mlx_ppl.inference.mcmc import MCMC, run

__all__ = [
    "Chain",
    "MultiChain",
    "merge",
    "effective_sample_size",
    "split_rhat",
    "MCMC",
    "run",
]
