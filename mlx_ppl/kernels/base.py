"""Shared sampler protocol and helpers.

Every sampler follows the same outer protocol::

    state = sampler.initialize(model, key, init=...)
    for i in range(n):
        key, subkey = mx.random.split(key)
        state, info = sampler.step(model, state, subkey)
        # state.trace is the accepted trace of iteration i

``info`` always carries ``log_density`` (log joint of the emitted trace),
``accepted`` and ``divergent``; samplers add their own diagnostics.
"""

import math

import mlx.core as mx

from mlx_ppl.errors import ConfigurationError, ModelError
from mlx_ppl.model.context import Condition, ProposeAndScore
from mlx_ppl.model.execution import evaluate

# Attempts at drawing an initial point with finite log density
MAX_INIT_ATTEMPTS = 100


def is_finite(x):
    try:
        return math.isfinite(float(x))
    except (TypeError, ValueError):
        return False


def tree_is_finite(tree):
    """True when no array in the dict ``tree`` has a NaN or infinite entry."""
    return not any(
        bool(mx.any(mx.isnan(v) | mx.isinf(v))) for v in tree.values()
    )


def fixed_values(trace, exclude=()):
    """Latent values of ``trace`` outside ``exclude``, for a Condition context."""
    exclude = set(exclude)
    return {
        name: entry.value for name, entry in trace.entries.items()
        if not entry.is_observed and name not in exclude
    }


def initial_trace(model, key, init=None):
    """Draw a starting trace from the prior, keeping values given in ``init``.

    Retries until the trace has a finite log density.
    """
    init = init or {}
    for name in init:
        if model.position(name) is None:
            raise ConfigurationError(f"initial value given for unknown variable '{name}'")
    context = Condition(init)
    for _ in range(MAX_INIT_ATTEMPTS):
        key, subkey = mx.random.split(key)
        log_density, trace = evaluate(model, context, key=subkey)
        if is_finite(log_density):
            return trace
    raise ConfigurationError(
        f"could not find an initial point with finite log density for model "
        f"'{model.name}' in {MAX_INIT_ATTEMPTS} attempts; pass init values"
    )


class Sampler:
    """Base class for all samplers.

    Parameters
    ----------
    variables : str or list, optional
        Latent variables this sampler moves (names or bare symbols). All
        latent variables when omitted; required when used inside ``Gibbs``.
    """

    name = "Sampler"
    gibbs_component = True

    def __init__(self, variables=None):
        self.variables = variables

    def target_names(self, model):
        if self.variables is None:
            return model.latent_names
        try:
            return model.select(self.variables)
        except ModelError as exc:
            raise ConfigurationError(str(exc)) from None

    def validate(self, model):
        """Raise ``ConfigurationError`` if this sampler cannot run on ``model``."""
        names = self.target_names(model)
        observed = set(model.observed_names)
        bad = [str(n) for n in names if n in observed]
        if bad:
            raise ConfigurationError(
                f"{self.name} cannot sample observed variables: {', '.join(bad)}"
            )

    def initialize(self, model, key, trace=None, init=None):
        if trace is None:
            trace = initial_trace(model, key, init)
        return self.init_state(model, trace)

    def init_state(self, model, trace):
        raise NotImplementedError

    def step(self, model, state, key, warmup=False):
        raise NotImplementedError

    def __repr__(self):
        return f"{self.name}()"


class UnconstrainedTarget:
    """Log density of a group of latent variables in unconstrained space.

    The other latent variables are held at their values in ``trace``. The
    log density includes the log-Jacobian of each group member's bijection,
    and only those, so it is the correct target for gradient-based moves of
    this group alone.

    Positions are dicts keyed by ``str(VarName)`` so MLX can differentiate
    through them.
    """

    def __init__(self, model, trace, names):
        self.model = model
        self.names = list(names)
        self.keys = [str(n) for n in self.names]
        self.fixed = fixed_values(trace, exclude=self.names)
        self.value_and_grad = mx.value_and_grad(self.log_density)

    def check_continuous(self, trace, sampler_name):
        discrete = [str(n) for n in self.names if trace[n].distribution.is_discrete]
        if discrete:
            raise ConfigurationError(
                f"{sampler_name} needs continuous variables; discrete: {', '.join(discrete)}"
            )

    def position(self, trace):
        return {
            key: trace[name].distribution.transform().forward(trace[name].value).astype(mx.float32)
            for name, key in zip(self.names, self.keys)
        }

    def _context(self, position):
        proposals = {name: position[key] for name, key in zip(self.names, self.keys)}
        return ProposeAndScore(proposals, transformed=True, parent=Condition(self.fixed))

    def log_density(self, position):
        log_density, _ = evaluate(self.model, self._context(position))
        return log_density

    def trace(self, position):
        _, trace = evaluate(self.model, self._context(position))
        return trace
