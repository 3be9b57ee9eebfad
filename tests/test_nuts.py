"""Tests for No-U-Turn Sampler (NUTS) implementation."""

import pytest
import mlx.core as mx
import numpy as np

from mlx_ppl import MCMC, NUTS, ConfigurationError, HalfNormal, ModelBuilder, Normal, run
from mlx_ppl.kernels.nuts import NUTSState


def normal_model(loc=5.0, scale=2.0):
    return ModelBuilder("normal").assume("mu", Normal(loc, scale)).build()


class TestNUTS:
    """Tests for NUTS sampler."""

    def test_simple_normal(self):
        """Test NUTS on simple 1D normal distribution."""
        chain = run(normal_model(), NUTS(step_size=0.5), num_iterations=1000, num_warmup=500, random_seed=42)

        mean = chain.get("mu").mean()
        std = chain.get("mu").std()

        assert 4.5 < mean < 5.5, f"Mean {mean} not close to 5.0"
        assert 1.5 < std < 2.5, f"Std {std} not close to 2.0"
        assert chain.acceptance_rate > 0.5, f"Acceptance rate {chain.acceptance_rate} too low"

    def test_multivariate_normal(self):
        """Test NUTS on 2D normal distribution."""
        model = (
            ModelBuilder("two_normals")
            .assume("mu1", Normal(0, 1))
            .assume("mu2", Normal(5, 2))
            .build()
        )
        chain = run(model, NUTS(step_size=0.3), num_iterations=1000, num_warmup=500, random_seed=123)

        mean1 = chain.get("mu1").mean()
        mean2 = chain.get("mu2").mean()

        assert -0.5 < mean1 < 0.5, f"mu1 mean {mean1} not close to 0.0"
        assert 4.5 < mean2 < 5.5, f"mu2 mean {mean2} not close to 5.0"

    def test_constrained_parameter(self):
        """Test NUTS with HalfNormal (positive constraint)."""
        model = (
            ModelBuilder("scale")
            .assume("sigma", HalfNormal(5.0))
            .observe("y", lambda v: Normal(0, v["sigma"]), 0.5)
            .build()
        )
        chain = run(model, NUTS(step_size=0.1), num_iterations=1000, num_warmup=500, random_seed=456)

        # All samples should be positive
        assert np.all(chain.get("sigma") > 0), "Some sigma samples are negative"

    def test_reproducibility(self):
        """Test that same random seed gives same results."""
        first = run(normal_model(0, 1), NUTS(), num_iterations=100, num_warmup=100, random_seed=42)
        second = run(normal_model(0, 1), NUTS(), num_iterations=100, num_warmup=100, random_seed=42)

        # Should be identical (same random seed)
        np.testing.assert_array_almost_equal(first.get("mu"), second.get("mu"), decimal=5)

    def test_max_tree_depth(self):
        """Test that max_tree_depth limits trajectory length."""
        chain = run(
            normal_model(0, 1),
            NUTS(step_size=0.01, max_tree_depth=3, adapt_step_size=False),
            num_iterations=100,
            random_seed=42,
        )
        depths = chain.diagnostic("tree_depth")
        assert len(chain) == 100
        assert depths.max() <= 3

    def test_state_tracks_tree_depth(self):
        sampler = NUTS()
        model = normal_model()
        sampler.validate(model)
        state = sampler.initialize(model, mx.random.key(0))
        assert isinstance(state, NUTSState)
        state, info = sampler.step(model, state, mx.random.key(1))
        assert state.tree_depth == info["tree_depth"] >= 1

    def test_gdemo_posterior(self, gdemo):
        """NUTS recovers E[m] = 7/6 for the InverseGamma/Normal model."""
        chain = run(gdemo, NUTS(), num_iterations=1000, num_warmup=500, random_seed=21)
        assert np.isclose(chain.get("m").mean(), 7 / 6, atol=0.15)

    def test_mcmc_api_integration(self):
        """Test NUTS through high-level MCMC API."""
        mcmc = MCMC(normal_model(3.0, 1.0), NUTS(step_size=0.5))
        samples = mcmc.run(num_samples=500, num_warmup=500, verbose=False)

        mean = np.mean(samples["mu"])
        assert 2.5 < mean < 3.5, f"Mean {mean} not close to 3.0"
        summary = mcmc.summary()
        assert set(summary) == {"mu"}
        assert "r_hat" in summary["mu"]

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError):
            run(normal_model(), NUTS(max_tree_depth=0), num_iterations=10)
        with pytest.raises(ConfigurationError):
            run(normal_model(), NUTS(target_accept=1.5), num_iterations=10)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
