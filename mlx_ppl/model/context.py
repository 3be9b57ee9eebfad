"""Execution contexts: how a latent site gets its value.

A context never changes which sites are visited or in which order, only the
values that populate the trace. Contexts chain through ``parent``: a
``Condition`` that has no value for a site defers to its parent, which is
``DrawFromPrior`` unless told otherwise.
"""

from collections import namedtuple

from mlx_ppl.distributions.base import as_array
from mlx_ppl.errors import ConfigurationError
from mlx_ppl.model.trace import VarName

Resolution = namedtuple("Resolution", ["value", "is_transformed", "log_jacobian"])

_NO_JACOBIAN = 0.0


def _by_varname(values):
    return {VarName.parse(k): v for k, v in values.items()}


class Context:
    def resolve(self, name, distribution, key):
        """Return the :class:`Resolution` for latent site ``name``.

        ``key`` is a fresh MLX random key for this site, or ``None`` when the
        execution was started without one.
        """
        raise NotImplementedError


class DrawFromPrior(Context):
    """Draw every latent value from its declared distribution."""

    def resolve(self, name, distribution, key):
        if key is None:
            raise ConfigurationError(
                f"no value supplied for '{name}' and no random key to draw one"
            )
        return Resolution(distribution.sample(key), False, _NO_JACOBIAN)

    def __repr__(self):
        return "DrawFromPrior()"


class Condition(Context):
    """Use the supplied value for a site if there is one, else ask ``parent``."""

    def __init__(self, values, parent=None):
        self.values = _by_varname(values)
        self.parent = parent if parent is not None else DrawFromPrior()

    def resolve(self, name, distribution, key):
        if name in self.values:
            return Resolution(as_array(self.values[name]), False, _NO_JACOBIAN)
        return self.parent.resolve(name, distribution, key)

    def __repr__(self):
        return f"Condition({sorted(str(n) for n in self.values)}, parent={self.parent!r})"


class ProposeAndScore(Context):
    """Record a sampler's candidate values without redrawing them.

    With ``transformed=True`` the proposals live in unconstrained space: each
    is mapped back through the inverse of the site's bijection and the
    log-Jacobian of that map is reported, so the execution's log density is
    the density of the unconstrained coordinates.
    """

    def __init__(self, proposals, transformed=False, parent=None):
        self.proposals = _by_varname(proposals)
        self.transformed = transformed
        self.parent = parent if parent is not None else DrawFromPrior()

    def resolve(self, name, distribution, key):
        if name not in self.proposals:
            return self.parent.resolve(name, distribution, key)
        proposal = self.proposals[name]
        if not self.transformed:
            return Resolution(proposal, False, _NO_JACOBIAN)
        bijector = distribution.transform()
        return Resolution(
            bijector.inverse(proposal), True, bijector.log_abs_det_jacobian(proposal)
        )

    def __repr__(self):
        return (
            f"ProposeAndScore({sorted(str(n) for n in self.proposals)}, "
            f"transformed={self.transformed})"
        )
