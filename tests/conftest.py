"""Models shared across the test modules."""

import multiprocessing

import pytest
import mlx.core as mx

from mlx_ppl import InverseGamma, ModelBuilder, Normal


def pytest_configure(config):
    # Forking after MLX has started its threads deadlocks the worker
    # processes of parallel="distributed" on Linux; spawn them instead.
    multiprocessing.set_start_method("spawn", force=True)


def build_gdemo(x=1.5, y=2.0):
    """s ~ InverseGamma(2, 3); m ~ Normal(0, √s); x, y ~ Normal(m, √s)."""
    return (
        ModelBuilder("gdemo")
        .assume("s", InverseGamma(2, 3))
        .assume("m", lambda v: Normal(0, mx.sqrt(v["s"])))
        .observe("x", lambda v: Normal(v["m"], mx.sqrt(v["s"])), x)
        .observe("y", lambda v: Normal(v["m"], mx.sqrt(v["s"])), y)
        .build()
    )


def build_normal_mean(data, prior_scale=10.0, noise=1.0):
    """mu ~ Normal(0, prior_scale); y[i] ~ Normal(mu, noise)."""
    return (
        ModelBuilder("normal_mean")
        .assume("mu", Normal(0.0, prior_scale))
        .observe_each("y", lambda v, i: Normal(v["mu"], noise), data)
        .build()
    )


def normal_mean_posterior(data, prior_scale=10.0, noise=1.0):
    """Exact posterior mean and standard deviation of ``build_normal_mean``."""
    precision = 1.0 / prior_scale ** 2 + len(data) / noise ** 2
    mean = (sum(data) / noise ** 2) / precision
    return mean, precision ** -0.5


@pytest.fixture
def gdemo():
    return build_gdemo()
