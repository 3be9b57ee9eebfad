"""Metropolis-Hastings MCMC sampler."""

import math
from dataclasses import dataclass

import mlx.core as mx

from mlx_ppl.errors import ConfigurationError, ModelError
from mlx_ppl.kernels.base import Sampler, fixed_values
from mlx_ppl.model.context import Condition, ProposeAndScore
from mlx_ppl.model.execution import evaluate
from mlx_ppl.model.trace import Trace

# Proposal that redraws a site from its prior given its (proposed) parents
PRIOR = "prior"


def acceptance_probability(log_density_current, log_density_proposed):
    """Metropolis acceptance probability min(1, exp(proposed - current)).

    A non-finite proposed density is never accepted.
    """
    diff = float(log_density_proposed) - float(log_density_current)
    if math.isnan(diff) or diff == -math.inf:
        return 0.0
    return 1.0 if diff >= 0 else math.exp(diff)


@dataclass
class MHState:
    trace: Trace


class MH(Sampler):
    """
    Metropolis-Hastings sampler.

    Continuous variables use a Gaussian random walk proposal:
        θ' = θ + ε, where ε ~ N(0, proposal_scale²I)

    Proposals outside a variable's support get log density -∞ and are
    rejected. Discrete variables are redrawn from their prior (given the
    proposed values of earlier variables) with the matching Hastings
    correction, which is also available for continuous variables by
    passing ``"prior"`` as their scale.

    Parameters
    ----------
    proposal_scale : float or dict, optional
        Random-walk scale for every variable, or a mapping from variable
        name (or symbol) to a scale or ``"prior"`` (default: 0.1)
    variables : list, optional
        Latent variables to move (default: all)

    Examples
    --------
    >>> run(model, MH(proposal_scale=0.3), num_iterations=5000)
    >>> Gibbs(MH({"s": 0.5}, variables=["s"]), HMC(0.1, 10, variables=["m"]))
    """

    name = "MH"

    def __init__(self, proposal_scale=0.1, variables=None):
        super().__init__(variables)
        self.proposal_scale = proposal_scale

    def validate(self, model):
        super().validate(model)
        if not self.target_names(model):
            raise ConfigurationError("MH needs at least one latent variable")
        scales = (
            self.proposal_scale.values() if isinstance(self.proposal_scale, dict)
            else [self.proposal_scale]
        )
        for scale in scales:
            if scale == PRIOR:
                continue
            if not isinstance(scale, (int, float)) or not scale > 0:
                raise ConfigurationError(f"proposal_scale must be positive or 'prior', got {scale!r}")
        if isinstance(self.proposal_scale, dict):
            try:
                model.select(list(self.proposal_scale))
            except ModelError as exc:
                raise ConfigurationError(f"proposal_scale: {exc}") from None

    def init_state(self, model, trace):
        for name in self.target_names(model):
            self._scale_for(name, trace[name].distribution)
        return MHState(trace)

    def _scale_for(self, name, distribution):
        """Proposal for ``name``: a random-walk scale or ``PRIOR``.

        Discrete variables are redrawn from their prior unless the scale
        mapping names a random-walk scale for them, which is an error.
        """
        scale = self.proposal_scale
        explicit = False
        if isinstance(scale, dict):
            for key in (str(name), name.symbol):
                if key in scale:
                    scale, explicit = scale[key], True
                    break
            else:
                scale = 0.1
        if not distribution.is_discrete:
            return scale
        if explicit and scale != PRIOR:
            raise ConfigurationError(
                f"random-walk proposal on discrete variable '{name}'; use 'prior'"
            )
        return PRIOR

    def step(self, model, state, key, warmup=False):
        current = state.trace
        names = self.target_names(model)

        key, noise_key, exec_key, accept_key = mx.random.split(key, 4)
        noise_keys = mx.random.split(noise_key, len(names))

        proposals = {}
        redraw = []
        for name, subkey in zip(names, noise_keys):
            entry = current[name]
            scale = self._scale_for(name, entry.distribution)
            if scale == PRIOR:
                redraw.append(name)
                continue
            # Gaussian random walk proposal
            noise = mx.random.normal(entry.value.shape, key=subkey) * scale
            proposals[name] = entry.value + noise

        fixed = fixed_values(current, exclude=list(proposals) + redraw)
        context = ProposeAndScore(proposals, parent=Condition(fixed))
        _, proposed = evaluate(model, context, key=exec_key)

        # Hastings correction for prior redraws: q(x | x') / q(x' | x)
        correction = 0.0
        for name in redraw:
            correction += float(current[name].log_prob) - float(proposed[name].log_prob)

        current_log_density = float(current.log_joint)
        proposed_log_density = float(proposed.log_joint)
        accept_prob = acceptance_probability(
            current_log_density, proposed_log_density + correction
        )
        accepted = float(mx.random.uniform(key=accept_key)) < accept_prob

        trace = proposed if accepted else current
        info = {
            "log_density": float(trace.log_joint),
            "accepted": accepted,
            "divergent": False,
            "acceptance_prob": accept_prob,
            "current_log_density": current_log_density,
            "proposed_log_density": proposed_log_density,
        }
        return MHState(trace), info

    def __repr__(self):
        return f"MH(proposal_scale={self.proposal_scale!r}, variables={self.variables!r})"

