"""Particle weights and resampling schemes.

All resamplers take normalized weights and a numpy ``Generator`` and return
an integer array of ancestor indices, one per new particle.
"""

import numpy as np
from scipy.special import logsumexp

from mlx_ppl.errors import ConfigurationError


def normalize_log_weights(log_weights):
    log_weights = np.asarray(log_weights, dtype=float)
    return log_weights - logsumexp(log_weights)


def effective_sample_size(log_weights):
    """
    Compute the effective sample size from log importance weights.

    1 / sum(w_i^2) for normalized weights w; between 1 and the number of
    particles, NaN when every weight is zero.
    """
    log_weights = np.asarray(log_weights, dtype=float)
    if not np.any(np.isfinite(log_weights)):
        return float("nan")
    weights = np.exp(normalize_log_weights(log_weights))
    return float(1.0 / np.sum(weights ** 2))


def multinomial(weights, num, rng):
    return rng.choice(len(weights), size=num, p=weights)


def residual(weights, num, rng):
    """Deterministic floor(num * w) copies, the remainder drawn multinomially."""
    scaled = num * weights
    counts = np.floor(scaled).astype(int)
    ancestors = np.repeat(np.arange(len(weights)), counts)
    remaining = num - counts.sum()
    if remaining > 0:
        leftover = scaled - counts
        extra = rng.choice(len(weights), size=remaining, p=leftover / leftover.sum())
        ancestors = np.concatenate([ancestors, extra])
    return ancestors


def stratified(weights, num, rng):
    positions = (np.arange(num) + rng.uniform(size=num)) / num
    return _search(weights, positions)


def systematic(weights, num, rng):
    positions = (np.arange(num) + rng.uniform()) / num
    return _search(weights, positions)


def _search(weights, positions):
    cumsum = np.cumsum(weights)
    return np.minimum(np.searchsorted(cumsum, positions), len(weights) - 1)


RESAMPLERS = {
    "multinomial": multinomial,
    "residual": residual,
    "stratified": stratified,
    "systematic": systematic,
}


def get_resampler(method):
    try:
        return RESAMPLERS[method]
    except KeyError:
        raise ConfigurationError(
            f"Unknown resampling method: {method!r} (choose from {sorted(RESAMPLERS)})"
        ) from None


def resample(log_weights, num, method, rng):
    """Draw ``num`` ancestor indices in proportion to ``exp(log_weights)``."""
    weights = np.exp(normalize_log_weights(log_weights))
    weights = weights / weights.sum()
    return np.asarray(get_resampler(method)(weights, num, rng), dtype=int)
