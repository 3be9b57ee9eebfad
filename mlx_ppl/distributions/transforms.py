"""Supports and bijections to unconstrained space.

Gradient-based samplers move every latent variable on the whole real line.
Each distribution declares its support; :func:`biject_to` picks the bijection
that maps the support onto the reals:

    real          -> identity
    positive      -> log      (inverse: exp)
    (low, high)   -> logit    (inverse: scaled sigmoid)

The ``log_abs_det_jacobian`` of each transform is taken for the *inverse*
direction, i.e. ``log |d inverse(u) / du|``, which is the term added to the
log density when sampling in unconstrained coordinates.
"""

import math

import mlx.core as mx

from mlx_ppl.distributions.special import log_sigmoid


class Constraint:
    is_discrete = False

    def __repr__(self):
        return self.__class__.__name__.lstrip("_").lower()


class _Real(Constraint):
    pass


class _Positive(Constraint):
    pass


class Interval(Constraint):
    """Open interval (low, high)."""

    def __init__(self, low, high):
        self.low = low
        self.high = high

    def __repr__(self):
        return f"interval({float(self.low):g}, {float(self.high):g})"


class _NonnegativeInteger(Constraint):
    is_discrete = True

    def __repr__(self):
        return "nonnegative_integer"


class IntegerInterval(Constraint):
    """Integers in [low, high]."""

    is_discrete = True

    def __init__(self, low, high):
        self.low = low
        self.high = high

    def __repr__(self):
        return f"integer_interval({self.low}, {self.high})"


real = _Real()
positive = _Positive()
unit_interval = Interval(0.0, 1.0)
nonnegative_integer = _NonnegativeInteger()
boolean = IntegerInterval(0, 1)


class Transform:
    """Bijection from a constrained support to the real line."""

    def forward(self, x):
        """Constrained -> unconstrained."""
        raise NotImplementedError

    def inverse(self, u):
        """Unconstrained -> constrained."""
        raise NotImplementedError

    def log_abs_det_jacobian(self, u):
        """log |d inverse(u) / du|, summed over elements."""
        raise NotImplementedError


class IdentityTransform(Transform):
    def forward(self, x):
        return x

    def inverse(self, u):
        return u

    def log_abs_det_jacobian(self, u):
        return mx.array(0.0)


class ExpTransform(Transform):
    def forward(self, x):
        return mx.log(x)

    def inverse(self, u):
        return mx.exp(u)

    def log_abs_det_jacobian(self, u):
        return mx.sum(u)


class SigmoidTransform(Transform):
    """Maps the reals onto (low, high) through a scaled logistic function."""

    def __init__(self, low=0.0, high=1.0):
        self.low = low
        self.high = high

    def forward(self, x):
        p = (x - self.low) / (self.high - self.low)
        return mx.log(p) - mx.log1p(-p)

    def inverse(self, u):
        return self.low + (self.high - self.low) * mx.sigmoid(u)

    def log_abs_det_jacobian(self, u):
        width = self.high - self.low
        log_width = mx.log(width) if isinstance(width, mx.array) else math.log(width)
        return mx.sum(log_width + log_sigmoid(u) + log_sigmoid(-u))


def biject_to(support):
    """Return the transform taking ``support`` to the real line.

    Raises
    ------
    NotImplementedError
        For discrete supports, which have no continuous reparameterization.
    """
    if support.is_discrete:
        raise NotImplementedError(f"no bijection to the reals for support {support!r}")
    if isinstance(support, _Positive):
        return ExpTransform()
    if isinstance(support, Interval):
        return SigmoidTransform(support.low, support.high)
    return IdentityTransform()
