"""
Example 1: Gaussian Model with Unknown Mean and Variance

Sample the posterior of a small conjugate model with NUTS on several chains
and compare the result to the exact posterior means.

Model:
    s ~ InverseGamma(2, 3)    # Prior on variance
    m ~ Normal(0, √s)         # Prior on mean
    x ~ Normal(m, √s)         # Observation x = 1.5
    y ~ Normal(m, √s)         # Observation y = 2.0

The exact posterior means are E[s] = 49/24 and E[m] = 7/6.
"""

import mlx.core as mx
import numpy as np
from mlx_ppl import ModelBuilder, InverseGamma, Normal, NUTS, log_prob, log_prob_chain, run


def main():
    print("\n" + "="*70)
    print("Example 1: Gaussian Model with Unknown Mean and Variance")
    print("="*70 + "\n")

    model = (
        ModelBuilder("gdemo")
        .assume("s", InverseGamma(2, 3))
        .assume("m", lambda v: Normal(0, mx.sqrt(v["s"])))
        .observe("x", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 1.5)
        .observe("y", lambda v: Normal(v["m"], mx.sqrt(v["s"])), 2.0)
        .build()
    )
    print(model)

    # Run four chains with NUTS
    chains = run(
        model,
        NUTS(),
        num_iterations=1000,
        num_warmup=500,
        num_chains=4,
        random_seed=42,
        verbose=True,
    )
    chains.print_summary()

    # Compare to exact values
    print("\nComparison to exact posterior means:")
    for name, exact in [("s", 49 / 24), ("m", 7 / 6)]:
        estimate = chains.get(name).mean()
        print(f"  {name}: exact={exact:.3f}, estimated={estimate:.3f}, "
              f"error={abs(exact - estimate):.3f}")

    # Density queries
    print("\nLog densities:")
    print(f"  log p(s=1, m=1, x, y) = {log_prob(model, {'s': 1.0, 'm': 1.0}):.4f}")
    print(f"  log p(s=1, m=1, x=0, y) = {log_prob(model, {'s': 1.0, 'm': 1.0, 'x': 0.0}):.4f}")
    likelihood = log_prob_chain(model, chains, kind="likelihood")
    print(f"  Mean log-likelihood over draws: {likelihood.mean():.4f}")

    print("\n" + "="*70)
    print("✅ Example completed successfully!")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
