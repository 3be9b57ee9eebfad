"""Probability queries against a model.

    >>> log_prob(gdemo, {"s": 1.0, "m": 1.0})          # log p(s, m, x, y)
    >>> log_prob(gdemo, {"s": 1.0, "m": 1.0, "y": IGNORE})  # drop y's term
    >>> log_prob(gdemo, {"s": 1.0, "m": 1.0, "x": 0.0})     # replace x's data

Every latent site must be bound to a value or explicitly marked ``IGNORE``.
Ignored latent sites are drawn from the prior (so sites after them still have
parents) and their density is left out of the result; ignored observed
sites are left out as well.
"""

import math

import mlx.core as mx
import numpy as np

from mlx_ppl.errors import ConfigurationError
from mlx_ppl.model.context import Condition
from mlx_ppl.model.execution import evaluate
from mlx_ppl.model.trace import VarName


class _Ignore:
    def __repr__(self):
        return "IGNORE"


IGNORE = _Ignore()

_KINDS = ("joint", "prior", "likelihood")


def log_prob(model, assignment, key=None):
    """Sum of log densities over the bound (non-ignored) sites.

    Ignored latent sites are drawn from the prior with ``key``; when no key
    is given they are drawn with ``mx.random.key(0)``, so repeated calls
    condition later sites on the same draws. Pass different keys to average
    over those draws.

    Returns a Python float.
    """
    assignment = {VarName.parse(k): v for k, v in assignment.items()}
    for name in assignment:
        if model.position(name) is None:
            raise ConfigurationError(f"model '{model.name}' has no variable '{name}'")

    ignored = {n for n, v in assignment.items() if v is IGNORE}
    bound = {n: v for n, v in assignment.items() if v is not IGNORE}
    observed = set(model.observed_names)

    overrides = {n: v for n, v in bound.items() if n in observed}
    if overrides:
        model = model.condition(overrides)

    unbound = [n for n in model.latent_names if n not in bound and n not in ignored]
    if unbound:
        raise ConfigurationError(
            "latent variables must be bound or marked IGNORE: "
            + ", ".join(str(n) for n in unbound)
        )

    latent_values = {n: v for n, v in bound.items() if n not in observed}
    if ignored and key is None:
        key = mx.random.key(0)
    _, trace = evaluate(model, Condition(latent_values), key=key)

    total = 0.0
    for name, entry in trace.entries.items():
        if name not in ignored:
            total = total + entry.log_prob
    return float(total)


def prob(model, assignment, key=None):
    """``exp(log_prob(...))``."""
    return math.exp(log_prob(model, assignment, key=key))


def log_prob_chain(model, chain, kind="joint"):
    """Re-evaluate ``model`` at every iteration of ``chain``.

    ``kind`` selects ``"joint"``, ``"prior"`` or ``"likelihood"``. The
    model's current observed data is used, so evaluating a chain against a
    re-conditioned model gives e.g. held-out likelihoods.

    Returns an array of shape ``(num_iterations,)`` for a :class:`Chain` and
    ``(num_iterations, num_chains)`` for a :class:`MultiChain`.
    """
    if kind not in _KINDS:
        raise ConfigurationError(f"kind must be one of {_KINDS}, got {kind!r}")
    if hasattr(chain, "chains"):
        columns = [log_prob_chain(model, c, kind) for c in chain.chains]
        return np.stack(columns, axis=1)

    latent = model.latent_names
    out = np.empty(len(chain))
    for i, trace in enumerate(chain.traces):
        missing = [n for n in latent if n not in trace]
        if missing:
            raise ConfigurationError(
                f"chain has no value for {', '.join(str(n) for n in missing)}"
            )
        _, fresh = evaluate(model, Condition({n: trace[n].value for n in latent}))
        value = {
            "joint": fresh.log_joint,
            "prior": fresh.log_prior,
            "likelihood": fresh.log_likelihood,
        }[kind]
        out[i] = float(value)
    return out
