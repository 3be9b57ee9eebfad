"""Differentiable special functions built from MLX primitives."""

import math

import mlx.core as mx

# Lanczos approximation, g = 7, n = 9
_LANCZOS_G = 7.0
_LANCZOS_COEFFS = (
    0.99999999999980993,
    676.5203681218851,
    -1259.1392167224028,
    771.32342877765313,
    -176.61502916214059,
    12.507343278686905,
    -0.13857109526572012,
    9.9843695780195716e-6,
    1.5056327351493116e-7,
)
_HALF_LOG_2PI = 0.5 * math.log(2 * math.pi)


def lgamma(x):
    """Log of the gamma function for positive ``x``.

    Evaluates the Lanczos series at ``x + 1`` and shifts back with
    ``lgamma(x) = lgamma(x + 1) - log(x)``, which keeps the series argument
    above 1 where the approximation is accurate.
    """
    if isinstance(x, mx.array):
        x = x.astype(mx.float32)
    else:
        x = mx.array(x, dtype=mx.float32)
    # Series in z = (x + 1) - 1 = x
    z = x
    series = _LANCZOS_COEFFS[0]
    for i in range(1, len(_LANCZOS_COEFFS)):
        series = series + _LANCZOS_COEFFS[i] / (z + i)
    t = z + _LANCZOS_G + 0.5
    lgamma_xp1 = _HALF_LOG_2PI + (z + 0.5) * mx.log(t) - t + mx.log(series)
    return lgamma_xp1 - mx.log(x)


def log_sigmoid(x):
    """log(sigmoid(x)) computed as -softplus(-x)."""
    return -mx.logaddexp(mx.zeros_like(x), -x)
