"""Declarative model description.

A model is an ordered list of declarations recorded by :class:`ModelBuilder`::

    gdemo = (
        ModelBuilder("gdemo")
        .assume("s", InverseGamma(2, 3))
        .assume("m", lambda v: Normal(0, mx.sqrt(v["s"])))
        .observe("x", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 1.5)
        .observe("y", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 2.0)
        .build()
    )

Distribution factories receive a read-only view of every value resolved so
far and may only look up names declared before them. Each data slot is
tagged ``Observed(value)`` or ``Latent`` when the declaration is recorded;
passing ``MISSING`` (or ``None``) as the value of an ``observe`` turns that
site into a latent variable to be inferred.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Tuple

from mlx_ppl.distributions.base import Distribution, as_array
from mlx_ppl.errors import ModelError
from mlx_ppl.model.trace import VarName


class _Missing:
    def __repr__(self):
        return "MISSING"

    def __reduce__(self):
        return "MISSING"


MISSING = _Missing()


@dataclass(frozen=True)
class Observed:
    value: Any


@dataclass(frozen=True)
class Latent:
    pass


LATENT = Latent()


def data_slot(value):
    """Tag a data value as ``Observed`` or, when missing, ``Latent``."""
    if value is MISSING or value is None:
        return LATENT
    return Observed(as_array(value))


@dataclass(frozen=True)
class Declaration:
    name: VarName
    factory: Callable
    slot: Optional[Any] = LATENT  # None marks a deterministic declaration

    @property
    def is_deterministic(self):
        return self.slot is None

    @property
    def is_observed(self):
        return isinstance(self.slot, Observed)

    def distribution(self, values):
        dist = self.factory(values)
        if not isinstance(dist, Distribution):
            raise ModelError(
                f"declaration of '{self.name}' produced {type(dist).__name__}, "
                "expected a Distribution"
            )
        return dist


class _Constant:
    """Factory for declarations whose distribution has fixed parameters."""

    def __init__(self, dist):
        self.dist = dist

    def __call__(self, values):
        return self.dist


def _factory(dist):
    if isinstance(dist, Distribution):
        return _Constant(dist)
    if callable(dist):
        return dist
    raise ModelError(f"expected a Distribution or a callable, got {type(dist).__name__}")


class _Indexed:
    """Factory for one element of an ``assume_each``/``observe_each`` block."""

    def __init__(self, fn, index):
        self.fn = fn
        self.index = index

    def __call__(self, values):
        return self.fn(values, self.index)


class Model:
    """Immutable, ordered sequence of declarations.

    Use :class:`ModelBuilder` to create one.
    """

    def __init__(self, name, declarations: Tuple[Declaration, ...]):
        self.name = name
        self.declarations = tuple(declarations)
        self._index = {}
        for i, decl in enumerate(self.declarations):
            if decl.name in self._index:
                raise ModelError(f"variable '{decl.name}' is declared more than once in model '{name}'")
            self._index[decl.name] = i

    @property
    def names(self):
        """Identifiers of all random sites, in declaration order."""
        return [d.name for d in self.declarations if not d.is_deterministic]

    @property
    def latent_names(self):
        return [d.name for d in self.declarations if not d.is_deterministic and not d.is_observed]

    @property
    def observed_names(self):
        return [d.name for d in self.declarations if d.is_observed]

    def position(self, name):
        """Declaration index of ``name``, or ``None`` if not declared."""
        return self._index.get(VarName.parse(name))

    def select(self, patterns):
        """Expand names and bare symbols into declared random-site identifiers.

        ``"x"`` matches ``x`` itself and every indexed ``x[i]``; ``"x[2]"``
        matches only that element. Unknown patterns raise ``ModelError``.
        """
        if isinstance(patterns, (str, VarName)):
            patterns = [patterns]
        selected = []
        for pattern in patterns:
            pattern = VarName.parse(pattern)
            matches = [
                n for n in self.names
                if n == pattern or (not pattern.indices and n.symbol == pattern.symbol)
            ]
            if not matches:
                raise ModelError(f"model '{self.name}' has no variable matching '{pattern}'")
            selected.extend(m for m in matches if m not in selected)
        return selected

    def condition(self, data):
        """Return a copy with the given sites observed at the given values."""
        data = {VarName.parse(k): v for k, v in data.items()}
        for name in data:
            decl = self._declaration(name)
            if decl.is_deterministic:
                raise ModelError(f"cannot condition deterministic value '{name}'")
        declarations = tuple(
            replace(d, slot=data_slot(data[d.name])) if d.name in data else d
            for d in self.declarations
        )
        return Model(self.name, declarations)

    def decondition(self, names):
        """Return a copy where the given observed sites become latent."""
        targets = set(self.select(names))
        declarations = tuple(
            replace(d, slot=LATENT) if d.name in targets else d
            for d in self.declarations
        )
        return Model(self.name, declarations)

    def _declaration(self, name):
        i = self.position(name)
        if i is None:
            raise ModelError(f"model '{self.name}' has no variable '{name}'")
        return self.declarations[i]

    def __repr__(self):
        return (
            f"Model({self.name!r}, latent={[str(n) for n in self.latent_names]}, "
            f"observed={[str(n) for n in self.observed_names]})"
        )


class ModelBuilder:
    """Fluent recorder of model declarations.

    Every method returns the builder; :meth:`build` freezes the declarations
    into a :class:`Model`. ``dist`` arguments are either a ``Distribution``
    with fixed parameters or a callable ``values -> Distribution``.
    """

    def __init__(self, name="model"):
        self.name = name
        self._declarations = []

    def assume(self, name, dist):
        """Declare a latent random variable."""
        self._declarations.append(Declaration(VarName.parse(name), _factory(dist), LATENT))
        return self

    def observe(self, name, dist, value):
        """Declare a site conditioned on ``value`` (latent if ``MISSING``)."""
        self._declarations.append(
            Declaration(VarName.parse(name), _factory(dist), data_slot(value))
        )
        return self

    def assume_each(self, symbol, size, dist_fn):
        """Declare ``symbol[0] .. symbol[size-1]``; ``dist_fn(values, i)``."""
        base = VarName.parse(symbol)
        for i in range(size):
            self._declarations.append(Declaration(base[i], _Indexed(dist_fn, i), LATENT))
        return self

    def observe_each(self, symbol, dist_fn, values):
        """Declare one site ``symbol[i]`` per data element.

        Elements equal to ``MISSING``/``None`` become latent, so partially
        observed vectors need no special handling in the model.
        """
        base = VarName.parse(symbol)
        for i, value in enumerate(values):
            self._declarations.append(
                Declaration(base[i], _Indexed(dist_fn, i), data_slot(value))
            )
        return self

    def deterministic(self, name, fn):
        """Record ``fn(values)`` under ``name`` for later declarations to read.

        Deterministic values are not random sites: they add no density and
        do not appear in traces.
        """
        if not callable(fn):
            raise ModelError(f"deterministic '{name}' needs a callable")
        self._declarations.append(Declaration(VarName.parse(name), fn, None))
        return self

    def build(self):
        return Model(self.name, self._declarations)
