"""Convergence diagnostics for scalar draws.

Both functions take an array of shape ``(num_iterations, num_chains)``;
a 1-D array is treated as a single chain.
"""

import math

import numpy as np

# Variance below which a quantity is treated as constant
EPS_VAR = 1e-12


def _as_chains(draws):
    draws = np.asarray(draws, dtype=float)
    if draws.ndim == 1:
        draws = draws[:, None]
    return draws


def split_chains(draws):
    """Cut each chain in half, doubling the number of chains."""
    draws = _as_chains(draws)
    half = draws.shape[0] // 2
    return np.concatenate([draws[:half], draws[half:2 * half]], axis=1)


def split_rhat(draws):
    """Split potential scale reduction factor (Gelman-Rubin R-hat).

    NaN with fewer than four iterations. Values near 1 indicate that the
    chains (and the two halves of each) agree.
    """
    draws = split_chains(draws)
    n, m = draws.shape
    if n < 2:
        return float("nan")

    chain_means = draws.mean(axis=0)
    chain_vars = draws.var(axis=0, ddof=1)

    W = float(np.mean(chain_vars))
    B = float(n * np.var(chain_means, ddof=1))
    if W < EPS_VAR:
        return 1.0 if B < EPS_VAR else float("nan")

    var_plus = ((n - 1) / n) * W + B / n
    return math.sqrt(var_plus / W)


def autocorrelation(x, max_lag):
    """Sample autocorrelation of a 1-D series at lags 0..max_lag."""
    x = np.asarray(x, dtype=float)
    n = len(x)
    xc = x - x.mean()
    var = float(np.dot(xc, xc) / n)
    if var < EPS_VAR:
        return np.ones(max_lag + 1)
    return np.array([
        np.dot(xc[:n - lag], xc[lag:]) / (n * var) for lag in range(max_lag + 1)
    ])


def effective_sample_size(draws, max_lag=None):
    """Autocorrelation-based effective sample size, pooled over chains.

    The autocorrelation at each lag is averaged across chains and summed
    until the first negative value (initial positive sequence).
    """
    draws = _as_chains(draws)
    n, m = draws.shape
    if n < 2:
        return float(n * m)
    if max_lag is None:
        max_lag = min(1000, n // 5)
    max_lag = max(1, min(int(max_lag), n - 1))

    if float(np.mean(draws.var(axis=0))) < EPS_VAR:
        return float(n * m)

    acf = np.mean([autocorrelation(draws[:, j], max_lag) for j in range(m)], axis=0)
    acf_sum = 0.0
    for rho in acf[1:]:
        if rho < 0.0:
            break
        acf_sum += rho

    tau = 1.0 + 2.0 * acf_sum
    return float(n * m / max(tau, 1.0))
