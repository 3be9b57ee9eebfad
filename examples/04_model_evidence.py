"""
Example 4: Model Comparison with the Marginal Likelihood

Estimate log p(data) for two priors on a normal mean with importance
sampling and with sequential Monte Carlo, and compare both estimates to
the exact value.

Model:
    μ ~ Normal(0, τ)      # τ = 1 (tight) or τ = 10 (vague)
    y ~ Normal(μ, 1)      # Likelihood
"""

import numpy as np
from scipy import stats
from mlx_ppl import ModelBuilder, Normal, Importance, SMC, run


def exact_log_evidence(data, prior_scale):
    """y is jointly Gaussian with covariance I + τ²·11ᵀ."""
    n = len(data)
    cov = np.eye(n) + prior_scale ** 2 * np.ones((n, n))
    return stats.multivariate_normal(np.zeros(n), cov).logpdf(data)


def main():
    print("\n" + "="*70)
    print("Example 4: Model Comparison with the Marginal Likelihood")
    print("="*70 + "\n")

    rng = np.random.default_rng(7)
    data = rng.normal(2.5, 1.0, 8)
    print(f"Observed mean: {data.mean():.3f} (n={len(data)})\n")

    estimates = {}
    for prior_scale in [1.0, 10.0]:
        model = (
            ModelBuilder(f"prior_scale_{prior_scale:g}")
            .assume("mu", Normal(0.0, prior_scale))
            .observe_each("y", lambda v, i: Normal(v["mu"], 1.0), data)
            .build()
        )

        importance = run(model, Importance(), num_iterations=5000, random_seed=0)
        smc = run(model, SMC(num_particles=200), num_iterations=50, random_seed=0)
        exact = exact_log_evidence(data, prior_scale)
        estimates[prior_scale] = smc.log_evidence

        print(f"Prior scale τ = {prior_scale:g}")
        print(f"  Exact:      {exact:.4f}")
        print(f"  Importance: {importance.log_evidence:.4f}")
        print(f"  SMC:        {smc.log_evidence:.4f}")
        print(f"  Posterior mean of μ (importance): {importance.weighted_mean('mu'):.3f}")
        print(f"  Posterior mean of μ (SMC):        {smc.get('mu').mean():.3f}\n")

    log_bayes_factor = estimates[1.0] - estimates[10.0]
    print(f"log Bayes factor (τ=1 vs τ=10): {log_bayes_factor:.3f}")

    print("\n" + "="*70)
    print("✅ Example completed successfully!")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
