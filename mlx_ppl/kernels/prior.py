"""Independent samplers: prior draws and likelihood-weighted importance sampling."""

from dataclasses import dataclass

from mlx_ppl.kernels.base import Sampler, is_finite
from mlx_ppl.model.context import DrawFromPrior
from mlx_ppl.model.execution import evaluate
from mlx_ppl.model.trace import Trace


@dataclass
class IndependentState:
    trace: Trace


class Prior(Sampler):
    """Run the model forward; every latent value is drawn from its prior.

    Observed sites are still scored, so ``log_density`` is the log joint of
    the drawn values and the data.
    """

    name = "Prior"
    gibbs_component = False

    def __init__(self):
        super().__init__(variables=None)

    def initialize(self, model, key, trace=None, init=None):
        _, trace = evaluate(model, DrawFromPrior(), key=key)
        return IndependentState(trace)

    def step(self, model, state, key, warmup=False):
        _, trace = evaluate(model, DrawFromPrior(), key=key)
        info = {
            "log_density": float(trace.log_joint),
            "accepted": True,
            "divergent": False,
        }
        return IndependentState(trace), info


class Importance(Prior):
    """Importance sampling with the prior as proposal.

    Each draw carries ``log_weight = log p(observations | latents)``.
    Posterior expectations come from weight-normalized averages, see
    :meth:`mlx_ppl.inference.chain.Chain.weighted_mean`.
    """

    name = "Importance"

    def step(self, model, state, key, warmup=False):
        state, info = super().step(model, state, key, warmup)
        log_weight = float(state.trace.log_likelihood)
        info["log_weight"] = log_weight
        info["accepted"] = is_finite(log_weight)
        return state, info
