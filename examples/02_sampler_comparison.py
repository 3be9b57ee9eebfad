"""
Example 2: Comparing Samplers

Run Metropolis-Hastings, HMC, HMCDA and NUTS on the same model and compare
effective sample size per second.

Model:
    μ ~ Normal(0, 10)     # Prior on mean
    σ ~ HalfNormal(5)     # Prior on std
    y ~ Normal(μ, σ)      # Likelihood
"""

import time

import numpy as np
from mlx_ppl import ModelBuilder, Normal, HalfNormal, MH, HMC, HMCDA, NUTS, run


def main():
    print("\n" + "="*70)
    print("Example 2: Comparing Samplers")
    print("="*70 + "\n")

    # Generate synthetic data
    print("Generating synthetic data...")
    rng = np.random.default_rng(42)
    true_mu = 5.0
    true_sigma = 2.0
    y_observed = rng.normal(true_mu, true_sigma, 50)
    print(f"  True μ: {true_mu}")
    print(f"  True σ: {true_sigma}")
    print(f"  Sample size: {len(y_observed)}\n")

    model = (
        ModelBuilder("normal")
        .assume("mu", Normal(0, 10))
        .assume("sigma", HalfNormal(5))
        .observe_each("y", lambda v, i: Normal(v["mu"], v["sigma"]), y_observed)
        .build()
    )

    samplers = [
        MH(proposal_scale=0.3),
        HMC(step_size=0.05, num_leapfrog_steps=10, adapt_step_size=True),
        HMCDA(step_size=0.05, trajectory_length=1.0),
        NUTS(),
    ]

    results = []
    for sampler in samplers:
        print(f"Running {sampler}...")
        start = time.time()
        chain = run(model, sampler, num_iterations=1000, num_warmup=500, random_seed=0)
        elapsed = time.time() - start
        summary = chain.summary()
        results.append((sampler.name, chain, summary, elapsed))

    print("\n" + "="*70)
    print(f"{'Sampler':<10} {'mean μ':>8} {'mean σ':>8} {'ESS μ':>8} {'ESS/s':>8} {'Accept':>8}")
    print("-"*70)
    for name, chain, summary, elapsed in results:
        ess = summary["mu"]["ess"]
        print(f"{name:<10} {summary['mu']['mean']:>8.3f} {summary['sigma']['mean']:>8.3f} "
              f"{ess:>8.1f} {ess / elapsed:>8.1f} {100*chain.acceptance_rate:>7.1f}%")
    print("="*70)

    print("\n" + "="*70)
    print("✅ Example completed successfully!")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
