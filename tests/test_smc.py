"""Tests for resampling, SMC and particle Gibbs."""

import pytest
import mlx.core as mx
import numpy as np
from scipy import stats

from mlx_ppl import PG, SMC, ConfigurationError, ModelBuilder, Uniform, VarName, run
from mlx_ppl.kernels.resampling import RESAMPLERS, effective_sample_size, resample
from mlx_ppl.kernels.smc import ParticleState, observation_barriers, particle_sweep
from mlx_ppl.model import Condition, evaluate

from conftest import build_normal_mean, normal_mean_posterior


class TestResampling:

    @pytest.mark.parametrize("method", sorted(RESAMPLERS))
    def test_degenerate_weights(self, method):
        log_weights = np.log([0.0, 0.0, 1.0, 0.0])
        ancestors = resample(log_weights, 4, method, np.random.default_rng(0))
        assert ancestors.tolist() == [2, 2, 2, 2]

    @pytest.mark.parametrize("method", sorted(RESAMPLERS))
    def test_ancestors_in_range(self, method):
        rng = np.random.default_rng(1)
        log_weights = rng.normal(size=50)
        ancestors = resample(log_weights, 50, method, rng)
        assert ancestors.shape == (50,)
        assert ancestors.min() >= 0 and ancestors.max() < 50

    @pytest.mark.parametrize("method", ["residual", "stratified", "systematic"])
    def test_low_variance_counts(self, method):
        """Each particle gets close to n * w_i copies."""
        weights = np.array([0.05, 0.15, 0.3, 0.5])
        ancestors = resample(np.log(weights), 100, method, np.random.default_rng(2))
        counts = np.bincount(ancestors, minlength=4)
        assert np.all(np.abs(counts - 100 * weights) <= 2)

    def test_multinomial_frequencies(self):
        weights = np.array([0.1, 0.2, 0.7])
        ancestors = resample(np.log(weights), 20000, "multinomial", np.random.default_rng(3))
        assert np.allclose(np.bincount(ancestors) / 20000, weights, atol=0.02)

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError):
            resample(np.zeros(3), 3, "bogus", np.random.default_rng(0))


class TestEffectiveSampleSize:

    def test_equal_weights(self):
        assert np.isclose(effective_sample_size(np.zeros(10)), 10.0)

    def test_single_particle_carries_all_weight(self):
        assert np.isclose(effective_sample_size([0.0, -np.inf, -np.inf]), 1.0)

    def test_all_zero_weights(self):
        assert np.isnan(effective_sample_size([-np.inf, -np.inf]))


class TestParticleSweep:

    def test_barriers_follow_observations(self, gdemo):
        assert observation_barriers(gdemo) == [3, 4]

    def test_conditioned_sites_are_barriers(self, gdemo):
        assert observation_barriers(gdemo, conditioned=[VarName("s")]) == [1, 3, 4]

    def test_conditioned_density_enters_weights(self, gdemo):
        """Holding s fixed, each particle's weight is log p(s) + log p(x, y | s, m)."""
        fixed = {VarName("s"): mx.array(2.0)}
        arena = particle_sweep(gdemo, 4, mx.random.key(2), fixed, "systematic", 1e-9)
        for particle, log_weight in zip(arena.particles, arena.log_weights):
            trace = particle.trace
            expected = float(trace["s"].log_prob) + float(trace.log_likelihood)
            assert np.isclose(log_weight, expected, rtol=1e-5)

    def test_ancestry_and_lineage(self):
        model = build_normal_mean([0.5, 1.0, 1.5, 2.0], prior_scale=1.0)
        arena = particle_sweep(model, 16, mx.random.key(0), {}, "systematic", 1.0)

        # Resampled after every observation but the last
        assert len(arena.ancestry) == 3
        assert len(arena) == 16
        for i in range(16):
            path = arena.lineage(i)
            assert len(path) == 4
            assert path[-1] == i
        assert 1 <= arena.num_unique_ancestors() <= 16

    def test_forks_do_not_alias(self):
        model = build_normal_mean([0.5, 1.0], prior_scale=1.0)
        arena = particle_sweep(model, 8, mx.random.key(1), {}, "multinomial", 1.0)
        traces = [p.trace for p in arena.particles]
        assert len({id(t) for t in traces}) == 8
        assert all(len(t) == 3 for t in traces)


class TestSMC:

    def test_log_evidence(self):
        data = [1.0, 0.5, 1.5]
        model = build_normal_mean(data, prior_scale=1.0)
        chain = run(model, SMC(num_particles=100), num_iterations=100, random_seed=4)

        cov = np.eye(3) + np.ones((3, 3))
        expected = stats.multivariate_normal(np.zeros(3), cov).logpdf(data)
        assert np.isclose(chain.log_evidence, expected, atol=0.1)

    def test_posterior_mean(self):
        data = [1.0, 0.5, 1.5]
        model = build_normal_mean(data, prior_scale=1.0)
        chain = run(model, SMC(num_particles=50), num_iterations=300, random_seed=5)

        post_mean, _ = normal_mean_posterior(data, prior_scale=1.0)
        assert np.isclose(chain.get("mu").mean(), post_mean, atol=0.15)
        assert chain.diagnostic("num_unique_ancestors").max() <= 50

    def test_zero_weight_sweep_is_rejected(self):
        model = (
            ModelBuilder("impossible")
            .assume("u", Uniform(0.0, 1.0))
            .observe("x", lambda v: Uniform(0.0, v["u"]), 5.0)
            .build()
        )
        sampler = SMC(num_particles=10)
        with pytest.raises(ConfigurationError):
            sampler.initialize(model, mx.random.key(0))

        _, trace = evaluate(model, Condition({"u": 0.5}))
        state, info = sampler.step(model, ParticleState(trace), mx.random.key(1))
        assert not info["accepted"]
        assert state.trace is trace

    @pytest.mark.parametrize("kwargs", [
        {"num_particles": 0},
        {"resampler": "bogus"},
        {"resample_threshold": 0.0},
        {"resample_threshold": 1.5},
    ])
    def test_invalid_configuration(self, gdemo, kwargs):
        with pytest.raises(ConfigurationError):
            run(gdemo, SMC(**kwargs), num_iterations=5)


class TestPG:

    def test_gdemo_posterior(self, gdemo):
        chain = run(gdemo, PG(num_particles=10), num_iterations=600, random_seed=6)
        assert np.isclose(chain.get("m").mean(), 7 / 6, atol=0.2)

    def test_reference_particle_survives(self, gdemo):
        """With a single particle the reference is always kept."""
        chain = run(gdemo, PG(num_particles=1), num_iterations=20, random_seed=7)
        s = chain.get("s")
        assert np.all(s == s[0])

    def test_invalid_configuration(self, gdemo):
        with pytest.raises(ConfigurationError):
            run(gdemo, PG(num_particles=0), num_iterations=5)
