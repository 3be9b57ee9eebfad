"""Gibbs composition of samplers over disjoint variable groups."""

from dataclasses import dataclass, field, replace
from typing import Any, List

import mlx.core as mx

from mlx_ppl.errors import ConfigurationError
from mlx_ppl.kernels.base import Sampler, initial_trace
from mlx_ppl.model.trace import Trace


@dataclass
class GibbsState:
    trace: Trace
    states: List[Any] = field(default_factory=list)


class Gibbs(Sampler):
    """
    Cycle through component samplers, each moving its own variables.

    Every component must name its ``variables``; the groups must be
    disjoint and together cover all latent variables. While a component
    runs, every other variable is held at its current value, and
    gradient-based components only see the Jacobian terms of their own
    group.

    Parameters
    ----------
    *samplers : Sampler
        Components, stepped in order once per iteration.

    Examples
    --------
    >>> Gibbs(MH(0.5, variables=["s"]), HMC(0.2, 5, variables=["m"]))
    >>> Gibbs(PG(20, variables=["z"]), NUTS(variables=["mu", "sigma"]))
    """

    name = "Gibbs"
    gibbs_component = False

    def __init__(self, *samplers):
        super().__init__(variables=None)
        self.samplers = list(samplers)

    def validate(self, model):
        if not self.samplers:
            raise ConfigurationError("Gibbs needs at least one component sampler")
        owner = {}
        for i, sampler in enumerate(self.samplers):
            label = f"{sampler.name}[{i}]"
            if not getattr(sampler, "gibbs_component", False):
                raise ConfigurationError(f"{label} cannot be used as a Gibbs component")
            if sampler.variables is None:
                raise ConfigurationError(f"{label} must name the variables it samples")
            sampler.validate(model)
            for name in sampler.target_names(model):
                if name in owner:
                    raise ConfigurationError(
                        f"variable '{name}' is sampled by both {owner[name]} and {label}"
                    )
                owner[name] = label
        uncovered = [str(n) for n in model.latent_names if n not in owner]
        if uncovered:
            raise ConfigurationError(
                f"Gibbs components do not cover: {', '.join(uncovered)}"
            )

    def initialize(self, model, key, trace=None, init=None):
        if trace is None:
            trace = initial_trace(model, key, init)
        return self.init_state(model, trace)

    def init_state(self, model, trace):
        return GibbsState(trace, [s.init_state(model, trace) for s in self.samplers])

    def step(self, model, state, key, warmup=False):
        trace = state.trace
        keys = mx.random.split(key, len(self.samplers))
        states = []
        info = {}
        accepted = False
        divergent = False
        for i, (sampler, sub_state, subkey) in enumerate(zip(self.samplers, state.states, keys)):
            # Components see the trace left by the previous component
            sub_state = replace(sub_state, trace=trace)
            sub_state, sub_info = sampler.step(model, sub_state, subkey, warmup)
            trace = sub_state.trace
            states.append(sub_state)
            accepted = accepted or bool(sub_info["accepted"])
            divergent = divergent or bool(sub_info["divergent"])
            for k, v in sub_info.items():
                info[f"{sampler.name}[{i}].{k}"] = v

        info["log_density"] = float(trace.log_joint)
        info["accepted"] = accepted
        info["divergent"] = divergent
        return GibbsState(trace, states), info

    def __repr__(self):
        return f"Gibbs({', '.join(repr(s) for s in self.samplers)})"
