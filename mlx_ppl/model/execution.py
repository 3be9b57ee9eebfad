"""Trace-walking interpreter for :class:`~mlx_ppl.model.model.Model`."""

import mlx.core as mx

from mlx_ppl.errors import DependencyError
from mlx_ppl.model.context import DrawFromPrior
from mlx_ppl.model.trace import Trace, TraceEntry, VarName


class Values:
    """Read-only view of the values resolved so far, passed to factories."""

    def __init__(self, model, resolved=None):
        self._model = model
        self._resolved = dict(resolved or {})

    def __getitem__(self, name):
        name = VarName.parse(name)
        try:
            return self._resolved[name]
        except KeyError:
            raise DependencyError(self._explain(name)) from None

    def __contains__(self, name):
        return VarName.parse(name) in self._resolved

    def get(self, name, default=None):
        return self._resolved.get(VarName.parse(name), default)

    def stack(self, symbol, size):
        """Gather ``symbol[0] .. symbol[size-1]`` into one array."""
        base = VarName.parse(symbol)
        return mx.stack([self[base[i]] for i in range(size)])

    def _set(self, name, value):
        self._resolved[name] = value

    def _copy(self):
        return Values(self._model, self._resolved)

    def _explain(self, name):
        if self._model.position(name) is None:
            return f"'{name}' is not declared in model '{self._model.name}'"
        return (
            f"'{name}' is read before it is resolved; declarations in model "
            f"'{self._model.name}' must follow data dependencies"
        )


def _score(distribution, value):
    log_prob = mx.sum(distribution.log_prob(value))
    return mx.where(mx.isnan(log_prob), mx.array(-mx.inf), log_prob)


class Execution:
    """One run of a model under a context, resumable site by site.

    ``advance(stop)`` visits declarations up to (not including) index
    ``stop``; particle samplers use it to move a population from one
    observation to the next. ``copy`` forks an execution for resampling: the
    trace and resolved values are duplicated so forks never alias.

    When ``key`` is given it is split once per latent site so draws are
    reproducible and independent across sites.
    """

    def __init__(self, model, context=None, key=None):
        self.model = model
        self.context = context if context is not None else DrawFromPrior()
        self.key = key
        self.trace = Trace()
        self.values = Values(model)
        self.cursor = 0

    @property
    def done(self):
        return self.cursor >= len(self.model.declarations)

    def advance(self, stop=None):
        declarations = self.model.declarations
        stop = len(declarations) if stop is None else min(stop, len(declarations))
        while self.cursor < stop:
            self._visit(declarations[self.cursor])
            self.cursor += 1
        return self

    def run(self):
        self.advance()
        return self.trace.log_density, self.trace

    def copy(self, key=None, context=None):
        """Fork this execution; the fork continues under ``context`` if given."""
        fork = Execution(self.model, context if context is not None else self.context, key)
        fork.trace = self.trace.copy()
        fork.values = self.values._copy()
        fork.cursor = self.cursor
        return fork

    def _next_key(self):
        if self.key is None:
            return None
        self.key, subkey = mx.random.split(self.key)
        return subkey

    def _visit(self, decl):
        if decl.is_deterministic:
            self.values._set(decl.name, decl.factory(self.values))
            return

        dist = decl.distribution(self.values)
        if decl.is_observed:
            value = decl.slot.value
            entry = TraceEntry(value, dist, is_observed=True, log_prob=_score(dist, value))
        else:
            resolution = self.context.resolve(decl.name, dist, self._next_key())
            value = resolution.value
            entry = TraceEntry(
                value, dist,
                is_transformed=resolution.is_transformed,
                log_prob=_score(dist, value),
            )
            if resolution.is_transformed:
                self.trace.log_jacobian = self.trace.log_jacobian + resolution.log_jacobian
        self.trace.record(decl.name, entry)
        self.values._set(decl.name, value)


def evaluate(model, context=None, key=None):
    """Run ``model`` to completion; return ``(log_density, trace)``.

    ``log_density`` is ``log_prior + log_likelihood + log_jacobian`` as an
    MLX scalar. Out-of-support values give ``-inf`` rather than raising.
    """
    return Execution(model, context, key).run()
