"""Tests for the Metropolis-Hastings sampler."""

import pytest
import mlx.core as mx
import numpy as np
from scipy import stats

from mlx_ppl import (
    MH,
    Bernoulli,
    Categorical,
    ConfigurationError,
    Gibbs,
    ModelBuilder,
    Normal,
    Poisson,
    log_prob,
    run,
)
from mlx_ppl.kernels.metropolis import acceptance_probability

from conftest import build_normal_mean, normal_mean_posterior


class TestAcceptanceProbability:

    def test_uphill_always_accepted(self):
        assert acceptance_probability(-5.0, -3.0) == 1.0

    def test_downhill(self):
        assert np.isclose(acceptance_probability(-3.0, -5.0), np.exp(-2.0))

    def test_non_finite_proposal(self):
        assert acceptance_probability(-3.0, -np.inf) == 0.0
        assert acceptance_probability(-3.0, np.nan) == 0.0


class TestMH:
    """Tests for MH sampler."""

    def test_acceptance_formula_each_step(self, gdemo):
        """Each step's acceptance probability is min(1, exp(proposed - current))."""
        chain = run(gdemo, MH(0.5), num_iterations=200, random_seed=1)
        previous = None
        for trace, info in zip(chain.traces, chain.diagnostics):
            expected = min(1.0, np.exp(info["proposed_log_density"] - info["current_log_density"]))
            assert np.isclose(info["acceptance_prob"], expected, rtol=1e-6)
            if previous is not None:
                assert np.isclose(info["current_log_density"], float(previous.log_joint))
                if not info["accepted"]:
                    # Rejection re-emits the previous trace
                    assert trace is previous
            previous = trace

    def test_long_run_acceptance_frequency(self, gdemo):
        """Accepted fraction matches the mean acceptance probability."""
        chain = run(gdemo, MH(0.8), num_iterations=4000, random_seed=2)
        expected = np.mean(chain.diagnostic("acceptance_prob"))
        assert abs(chain.acceptance_rate - expected) < 0.03

    def test_posterior_mean(self):
        """MH recovers the conjugate posterior of a normal mean."""
        data = [2.1, 1.7, 2.4, 1.9, 2.6, 2.2, 1.8, 2.0]
        model = build_normal_mean(data)
        chain = run(model, MH(0.5), num_iterations=6000, num_warmup=500, random_seed=3)

        post_mean, post_sd = normal_mean_posterior(data)
        samples = chain.get("mu")
        assert np.isclose(samples.mean(), post_mean, atol=0.1)
        assert np.isclose(samples.std(), post_sd, atol=0.1)

    def test_discrete_prior_proposal(self):
        """Discrete sites are redrawn from their prior with a Hastings correction."""
        model = (
            ModelBuilder("mixture")
            .assume("z", Categorical(probs=[0.2, 0.8]))
            .observe("x", lambda v: Normal(2.0 * v["z"].astype(mx.float32), 1.0), 2.0)
            .build()
        )
        chain = run(model, MH(), num_iterations=4000, random_seed=4)

        w0 = 0.2 * stats.norm(0, 1).pdf(2.0)
        w1 = 0.8 * stats.norm(2, 1).pdf(2.0)
        assert np.isclose(chain.get("z").mean(), w1 / (w0 + w1), atol=0.04)

    def test_per_variable_scales(self, gdemo):
        sampler = MH({"s": 0.3, "m": 0.6})
        chain = run(gdemo, sampler, num_iterations=100)
        assert len(chain) == 100

    def test_invalid_scale(self, gdemo):
        with pytest.raises(ConfigurationError):
            run(gdemo, MH(-0.1), num_iterations=10)
        with pytest.raises(ConfigurationError):
            run(gdemo, MH({"q": 0.1}), num_iterations=10)

    def test_random_walk_on_discrete(self):
        model = ModelBuilder("counts").assume("k", Poisson(3.0)).build()
        with pytest.raises(ConfigurationError):
            run(model, MH({"k": 0.5}), num_iterations=10)

    def test_scalar_scale_leaves_discrete_to_prior(self):
        """A scalar scale applies to continuous variables; discrete ones use prior redraws."""
        model = (
            ModelBuilder("label_and_mean")
            .assume("z", Bernoulli(0.5))
            .assume("mu", Normal(0.0, 1.0))
            .build()
        )
        chain = run(model, MH(0.3), num_iterations=200, random_seed=6)
        assert set(np.unique(chain.get("z"))) == {0, 1}

        sampler = Gibbs(MH(variables=["z"]), MH(0.5, variables=["mu"]))
        chain = run(model, sampler, num_iterations=50, random_seed=7)
        assert len(chain) == 50

    def test_observed_variable_rejected(self, gdemo):
        with pytest.raises(ConfigurationError, match="observed"):
            run(gdemo, MH(0.1, variables=["x"]), num_iterations=10)

    def test_samples_respect_support(self, gdemo):
        chain = run(gdemo, MH(1.0), num_iterations=500, random_seed=5)
        assert np.all(chain.get("s") > 0)
        for trace in chain.traces[::50]:
            lp = log_prob(gdemo, {"s": trace["s"].value, "m": trace["m"].value})
            assert np.isfinite(lp)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
