"""
MLX-PPL: Probabilistic Programming on Apple's MLX

Models are declared once with a fluent builder and can then be sampled with
any of the bundled samplers (prior, importance, Metropolis-Hastings, HMC,
NUTS, SMC, particle Gibbs, or a Gibbs combination of them) and queried for
log densities.

Example:
    >>> import mlx.core as mx
    >>> from mlx_ppl import ModelBuilder, InverseGamma, Normal, NUTS, run
    >>>
    >>> gdemo = (
    ...     ModelBuilder("gdemo")
    ...     .assume("s", InverseGamma(2, 3))
    ...     .assume("m", lambda v: Normal(0, mx.sqrt(v["s"])))
    ...     .observe("x", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 1.5)
    ...     .observe("y", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 2.0)
    ...     .build()
    ... )
    >>> chain = run(gdemo, NUTS(), num_iterations=1000, num_warmup=500)
    >>> chain.print_summary()
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Import core components
from mlx_ppl.errors import (
    ChainMismatchError,
    ConfigurationError,
    DependencyError,
    ModelError,
    PPLError,
)
from mlx_ppl.distributions import (
    Bernoulli,
    Beta,
    Categorical,
    Distribution,
    Exponential,
    Gamma,
    HalfNormal,
    InverseGamma,
    Normal,
    Poisson,
    Uniform,
)
from mlx_ppl.model import (
    IGNORE,
    MISSING,
    Model,
    ModelBuilder,
    Trace,
    VarName,
    evaluate,
    log_prob,
    log_prob_chain,
    memoize,
    prob,
)
from mlx_ppl.kernels import HMC, HMCDA, MH, NUTS, PG, SMC, Gibbs, Importance, Prior
from mlx_ppl.inference import MCMC, Chain, MultiChain, merge, run

__all__ = [
    "PPLError",
    "ConfigurationError",
    "ChainMismatchError",
    "ModelError",
    "DependencyError",
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
    "Model",
    "ModelBuilder",
    "MISSING",
    "IGNORE",
    "Trace",
    "VarName",
    "evaluate",
    "log_prob",
    "prob",
    "log_prob_chain",
    "memoize",
    "Prior",
    "Importance",
    "MH",
    "HMC",
    "HMCDA",
    "NUTS",
    "SMC",
    "PG",
    "Gibbs",
    "run",
    "MCMC",
    "Chain",
    "MultiChain",
    "merge",
]
