"""Variable identifiers and execution traces."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Tuple

import mlx.core as mx

from mlx_ppl.distributions.base import Distribution
from mlx_ppl.errors import ModelError

_VARNAME_RE = re.compile(r"^\s*([A-Za-z_]\w*)\s*((?:\[[^\]]*\])*)\s*$")


@dataclass(frozen=True, order=True)
class VarName:
    """Structured name of one random-variable site, e.g. ``x[3]``.

    ``VarName("x")[3] == VarName("x", (3,)) == VarName.parse("x[3]")``.
    """

    symbol: str
    indices: Tuple[int, ...] = ()

    @classmethod
    def parse(cls, name):
        if isinstance(name, VarName):
            return name
        if not isinstance(name, str):
            raise TypeError(f"variable names must be str or VarName, got {type(name).__name__}")
        match = _VARNAME_RE.match(name)
        if match is None:
            raise ValueError(f"malformed variable name {name!r}")
        symbol, brackets = match.groups()
        indices = []
        for group in re.findall(r"\[([^\]]*)\]", brackets):
            indices.extend(int(part) for part in group.split(","))
        return cls(symbol, tuple(indices))

    def __getitem__(self, index):
        if not isinstance(index, tuple):
            index = (index,)
        return VarName(self.symbol, self.indices + tuple(int(i) for i in index))

    def __str__(self):
        if not self.indices:
            return self.symbol
        return f"{self.symbol}[{','.join(str(i) for i in self.indices)}]"


@dataclass(frozen=True)
class TraceEntry:
    value: Any
    distribution: Distribution
    is_observed: bool = False
    is_transformed: bool = False
    log_prob: Any = 0.0


@dataclass
class Trace:
    """Values of every random site visited by one model execution.

    Entries are kept in visiting order. The three accumulators split the
    log density by source so samplers can pick what they need:

    - ``log_prior``: latent sites
    - ``log_likelihood``: observed sites
    - ``log_jacobian``: change-of-variables terms for sites proposed in
      unconstrained space
    """

    entries: Dict[VarName, TraceEntry] = field(default_factory=dict)
    log_prior: Any = 0.0
    log_likelihood: Any = 0.0
    log_jacobian: Any = 0.0

    def record(self, name, entry):
        if name in self.entries:
            raise ModelError(f"variable '{name}' was visited twice in one execution")
        self.entries[name] = entry
        if entry.is_observed:
            self.log_likelihood = self.log_likelihood + entry.log_prob
        else:
            self.log_prior = self.log_prior + entry.log_prob

    @property
    def log_joint(self):
        """log p(latents, observations), without Jacobian terms."""
        return self.log_prior + self.log_likelihood

    @property
    def log_density(self):
        """Log density in the coordinates the sites were proposed in."""
        return self.log_joint + self.log_jacobian

    def names(self):
        return list(self.entries)

    def latent_names(self):
        return [n for n, e in self.entries.items() if not e.is_observed]

    def observed_names(self):
        return [n for n, e in self.entries.items() if e.is_observed]

    def value(self, name):
        return self[name].value

    def values(self, latent_only=False):
        return {
            n: e.value for n, e in self.entries.items()
            if not (latent_only and e.is_observed)
        }

    def copy(self):
        """Shallow copy; entries are immutable and shared."""
        return Trace(dict(self.entries), self.log_prior, self.log_likelihood, self.log_jacobian)

    def __getitem__(self, name):
        return self.entries[VarName.parse(name)]

    def __contains__(self, name):
        return VarName.parse(name) in self.entries

    def __iter__(self) -> Iterator[VarName]:
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def __repr__(self):
        parts = []
        for name, entry in self.entries.items():
            value = entry.value
            if isinstance(value, mx.array) and value.size == 1:
                value = f"{value.item():.4g}"
            flag = " (obs)" if entry.is_observed else ""
            parts.append(f"{name}={value}{flag}")
        return f"Trace({', '.join(parts)})"
