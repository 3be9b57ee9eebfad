"""Tests for probability distributions."""

import pytest
import mlx.core as mx
import numpy as np
from scipy import stats

from mlx_ppl.distributions import (
    Bernoulli,
    Beta,
    Categorical,
    Exponential,
    Gamma,
    HalfNormal,
    InverseGamma,
    Normal,
    Poisson,
    Uniform,
)
from mlx_ppl.distributions.special import lgamma


class TestNormal:
    """Tests for Normal distribution."""

    def test_log_prob_matches_scipy(self):
        dist = Normal(1.5, 2.0)
        for x in [-3.0, 0.0, 1.5, 4.2]:
            assert np.isclose(float(dist.log_prob(x)), stats.norm(1.5, 2.0).logpdf(x), rtol=1e-5)

    def test_nonpositive_scale(self):
        """A zero scale has no density anywhere."""
        assert float(Normal(0.0, 0.0).log_prob(1.0)) == -np.inf

    def test_sample_shape(self):
        """Test sampling produces correct shape."""
        dist = Normal(0, 1)
        samples = dist.sample(mx.random.key(0), shape=(100,))
        assert samples.shape == (100,)

    def test_sample_statistics(self):
        """Test sample statistics match distribution parameters."""
        dist = Normal(5.0, 2.0)
        samples = dist.sample(mx.random.key(42), shape=(10000,))

        # Check mean and std (should be close)
        sample_mean = float(mx.mean(samples))
        sample_std = float(mx.std(samples))

        assert np.isclose(sample_mean, 5.0, atol=0.1)
        assert np.isclose(sample_std, 2.0, atol=0.1)


class TestHalfNormal:
    """Tests for HalfNormal distribution."""

    def test_log_prob_negative(self):
        """Test log probability for negative values is -inf."""
        dist = HalfNormal(1.0)
        log_p = dist.log_prob(mx.array(-1.0))
        assert float(log_p) == -np.inf

    def test_log_prob_zero(self):
        """Test log probability at zero."""
        dist = HalfNormal(1.0)
        log_p = dist.log_prob(mx.array(0.0))
        # At zero: log(2/sqrt(2π))
        expected = np.log(2.0) - 0.5 * np.log(2 * np.pi)
        assert np.isclose(float(log_p), expected, rtol=1e-5)

    def test_log_prob_matches_scipy(self):
        dist = HalfNormal(2.5)
        for x in [0.1, 1.0, 4.0]:
            assert np.isclose(float(dist.log_prob(x)), stats.halfnorm(scale=2.5).logpdf(x), rtol=1e-5)

    def test_sample_all_positive(self):
        """Test all samples are positive."""
        samples = HalfNormal(2.0).sample(mx.random.key(0), shape=(1000,))
        assert mx.all(samples >= 0)


class TestBeta:
    """Tests for Beta distribution."""

    def test_log_prob_matches_scipy(self):
        dist = Beta(2.5, 4.0)
        for x in [0.05, 0.3, 0.9]:
            assert np.isclose(float(dist.log_prob(x)), stats.beta(2.5, 4.0).logpdf(x), atol=1e-4)

    def test_log_prob_outside_support(self):
        """Test log probability returns -inf outside (0, 1)."""
        dist = Beta(2, 2)
        assert float(dist.log_prob(mx.array(-0.1))) == -np.inf
        assert float(dist.log_prob(mx.array(1.5))) == -np.inf

    def test_log_prob_boundaries(self):
        """Test log probability at boundaries."""
        dist = Beta(2, 2)
        assert float(dist.log_prob(mx.array(0.0))) == -np.inf
        assert float(dist.log_prob(mx.array(1.0))) == -np.inf

    def test_sample_statistics(self):
        """Test sample statistics match theoretical values."""
        dist = Beta(5, 2)
        samples = dist.sample(mx.random.key(42), shape=(10000,))

        # Mean = alpha / (alpha + beta)
        expected_mean = 5.0 / (5.0 + 2.0)
        assert np.isclose(float(mx.mean(samples)), expected_mean, atol=0.05)

        # Variance = (alpha * beta) / ((alpha + beta)^2 * (alpha + beta + 1))
        expected_var = (5.0 * 2.0) / ((7.0 ** 2) * 8.0)
        assert np.isclose(float(mx.var(samples)), expected_var, atol=0.01)

    def test_mean(self):
        """Test mean calculation."""
        assert np.isclose(float(Beta(3, 7).mean()), 0.3)


class TestGamma:
    """Tests for Gamma and InverseGamma distributions."""

    def test_log_prob_matches_scipy(self):
        dist = Gamma(3.0, 2.0)
        for x in [0.2, 1.0, 5.0]:
            expected = stats.gamma(3.0, scale=0.5).logpdf(x)
            assert np.isclose(float(dist.log_prob(x)), expected, atol=1e-4)

    def test_log_prob_negative(self):
        assert float(Gamma(2.0, 1.0).log_prob(-1.0)) == -np.inf

    def test_sample_statistics(self):
        dist = Gamma(10, 2)
        samples = dist.sample(mx.random.key(42), shape=(10000,))
        assert np.isclose(float(mx.mean(samples)), 5.0, atol=0.1)
        assert np.isclose(float(mx.var(samples)), 2.5, atol=0.2)

    def test_inverse_gamma_matches_scipy(self):
        dist = InverseGamma(2, 3)
        for x in [0.5, 1.0, 3.0]:
            expected = stats.invgamma(2, scale=3).logpdf(x)
            assert np.isclose(float(dist.log_prob(x)), expected, atol=1e-4)

    def test_inverse_gamma_mean(self):
        assert np.isclose(float(InverseGamma(3, 4).mean()), 2.0)
        assert float(InverseGamma(1, 4).mean()) == np.inf

    def test_inverse_gamma_samples_positive(self):
        samples = InverseGamma(2, 3).sample(mx.random.key(1), shape=(1000,))
        assert mx.all(samples > 0)


class TestLgamma:
    """Tests for the differentiable log-gamma function."""

    @pytest.mark.parametrize("x", [0.1, 0.5, 1.0, 2.0, 3.5, 10.0, 50.0])
    def test_matches_scipy(self, x):
        from scipy.special import gammaln
        assert np.isclose(float(lgamma(x)), gammaln(x), rtol=1e-4, atol=1e-4)

    def test_gradient_is_digamma(self):
        from scipy.special import digamma
        grad = mx.grad(lambda a: lgamma(a))(mx.array(2.5))
        assert np.isclose(float(grad), digamma(2.5), atol=1e-3)


class TestExponential:
    """Tests for Exponential and Uniform distributions."""

    def test_log_prob_zero(self):
        """Test log probability at zero equals log(rate)."""
        assert np.isclose(float(Exponential(2.0).log_prob(0.0)), np.log(2.0))

    def test_log_prob_negative(self):
        assert float(Exponential(1.0).log_prob(-0.5)) == -np.inf

    def test_sample_statistics(self):
        samples = Exponential(0.5).sample(mx.random.key(42), shape=(10000,))
        assert np.isclose(float(mx.mean(samples)), 2.0, atol=0.1)

    def test_uniform_log_prob(self):
        dist = Uniform(-1.0, 3.0)
        assert np.isclose(float(dist.log_prob(0.0)), -np.log(4.0))
        assert float(dist.log_prob(3.5)) == -np.inf

    def test_uniform_samples_in_bounds(self):
        samples = Uniform(2.0, 5.0).sample(mx.random.key(3), shape=(1000,))
        assert mx.all(samples >= 2.0)
        assert mx.all(samples <= 5.0)


class TestCategorical:
    """Tests for Categorical distribution."""

    def test_init_with_probs(self):
        """Test initialization with probabilities."""
        dist = Categorical(probs=[0.2, 0.3, 0.5])
        assert dist.num_categories == 3
        assert np.isclose(float(mx.sum(dist.probs)), 1.0)

    def test_init_with_logits(self):
        """Test initialization with logits."""
        dist = Categorical(logits=[1.0, 2.0, 3.0])
        assert dist.num_categories == 3
        assert np.isclose(float(mx.sum(dist.probs)), 1.0)

    def test_init_error(self):
        """Test error when neither probs nor logits specified."""
        with pytest.raises(ValueError):
            Categorical()

    def test_init_error_both(self):
        """Test error when both probs and logits specified."""
        with pytest.raises(ValueError):
            Categorical(probs=[0.5, 0.5], logits=[1.0, 1.0])

    def test_log_prob_valid(self):
        """Test log probability for valid category indices."""
        dist = Categorical(probs=[0.2, 0.5, 0.3])
        assert np.isclose(float(dist.log_prob(mx.array(0))), np.log(0.2), rtol=0.01)
        assert np.isclose(float(dist.log_prob(mx.array(1))), np.log(0.5), rtol=0.01)

    def test_log_prob_invalid(self):
        """Test log probability returns -inf for invalid indices."""
        dist = Categorical(probs=[0.2, 0.5, 0.3])
        assert float(dist.log_prob(mx.array(-1))) == -np.inf
        assert float(dist.log_prob(mx.array(3))) == -np.inf

    def test_sample_distribution(self):
        """Test sample distribution matches probabilities."""
        dist = Categorical(probs=[0.1, 0.6, 0.3])
        samples = dist.sample(mx.random.key(42), shape=(10000,))

        counts = [float(mx.sum(samples == i)) for i in range(3)]
        empirical_probs = [c / 10000 for c in counts]

        assert np.isclose(empirical_probs[0], 0.1, atol=0.02)
        assert np.isclose(empirical_probs[1], 0.6, atol=0.02)
        assert np.isclose(empirical_probs[2], 0.3, atol=0.02)

    def test_mode(self):
        """Test mode returns category with highest probability."""
        assert int(Categorical(probs=[0.1, 0.7, 0.2]).mode()) == 1

    def test_is_discrete(self):
        assert Categorical(probs=[0.5, 0.5]).is_discrete


@pytest.mark.parametrize("dist, reference", [
    (Normal(1.0, 2.0), stats.norm(1.0, 2.0)),
    (HalfNormal(1.5), stats.halfnorm(scale=1.5)),
    (Beta(2.0, 5.0), stats.beta(2.0, 5.0)),
    (Gamma(3.0, 2.0), stats.gamma(3.0, scale=0.5)),
    (InverseGamma(4.0, 3.0), stats.invgamma(4.0, scale=3.0)),
    (Exponential(0.5), stats.expon(scale=2.0)),
    (Uniform(-1.0, 3.0), stats.uniform(-1.0, 4.0)),
    (Poisson(3.5), stats.poisson(3.5)),
    (Bernoulli(0.3), stats.bernoulli(0.3)),
])
def test_moments_match_scipy(dist, reference):
    assert np.isclose(float(dist.mean()), reference.mean(), rtol=1e-5)
    assert np.isclose(float(dist.variance()), reference.var(), rtol=1e-5)


class TestDiscrete:
    """Tests for Poisson and Bernoulli distributions."""

    def test_poisson_matches_scipy(self):
        dist = Poisson(3.5)
        for k in [0, 1, 4, 10]:
            assert np.isclose(float(dist.log_prob(k)), stats.poisson(3.5).logpmf(k), atol=1e-4)

    def test_poisson_non_integer(self):
        assert float(Poisson(2.0).log_prob(1.5)) == -np.inf
        assert float(Poisson(2.0).log_prob(-1)) == -np.inf

    def test_poisson_sample_statistics(self):
        samples = Poisson(4.0).sample(mx.random.key(0), shape=(10000,))
        assert np.isclose(float(mx.mean(samples.astype(mx.float32))), 4.0, atol=0.1)

    def test_bernoulli_log_prob(self):
        dist = Bernoulli(0.3)
        assert np.isclose(float(dist.log_prob(1)), np.log(0.3), rtol=1e-5)
        assert np.isclose(float(dist.log_prob(0)), np.log(0.7), rtol=1e-5)
        assert float(dist.log_prob(2)) == -np.inf

    def test_bernoulli_degenerate(self):
        """p = 0 and p = 1 give certain outcomes, not NaN."""
        assert float(Bernoulli(1.0).log_prob(1)) == 0.0
        assert float(Bernoulli(1.0).log_prob(0)) == -np.inf
        assert float(Bernoulli(0.0).log_prob(0)) == 0.0
        assert float(Bernoulli(0.0).log_prob(1)) == -np.inf

    def test_bernoulli_sample_statistics(self):
        samples = Bernoulli(0.25).sample(mx.random.key(5), shape=(10000,))
        assert np.isclose(float(mx.mean(samples.astype(mx.float32))), 0.25, atol=0.02)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
