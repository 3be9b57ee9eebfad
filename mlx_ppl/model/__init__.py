"""Model description, traces, execution contexts and queries."""

from mlx_ppl.model.trace import VarName, Trace, TraceEntry
from mlx_ppl.model.model import (
    LATENT,
    MISSING,
    Declaration,
    Latent,
    Model,
    ModelBuilder,
    Observed,
)
from mlx_ppl.model.context import Condition, Context, DrawFromPrior, ProposeAndScore
from mlx_ppl.model.execution import Execution, evaluate
from mlx_ppl.model.memo import memoize
from mlx_ppl.model.query import IGNORE, log_prob, log_prob_chain, prob

__all__ = [
    "VarName",
    "Trace",
    "TraceEntry",
    "LATENT",
    "MISSING",
    "Declaration",
    "Latent",
    "Model",
    "ModelBuilder",
    "Observed",
    "Condition",
    "Context",
    "DrawFromPrior",
    "ProposeAndScore",
    "Execution",
    "evaluate",
    "memoize",
    "IGNORE",
    "log_prob",
    "log_prob_chain",
    "prob",
]
