"""Tests for chains, merging and convergence diagnostics."""

import pytest
import numpy as np

from mlx_ppl import (
    MH,
    Chain,
    ChainMismatchError,
    ConfigurationError,
    ModelBuilder,
    MultiChain,
    Normal,
    Prior,
    VarName,
    merge,
    run,
)
from mlx_ppl.inference.diagnostics import effective_sample_size, split_rhat


class TestChain:

    def test_length_and_identifiers(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=40)
        assert len(chain) == 40
        expected = {VarName(n) for n in ["s", "m", "x", "y"]}
        for trace in chain.traces:
            assert set(trace.names()) == expected
        assert chain.frozen

    def test_get(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=25)
        assert chain.get("s").shape == (25,)
        assert chain["m"].shape == (25,)
        assert np.all(chain.get("x") == 1.5)
        with pytest.raises(KeyError):
            chain.get("q")

    def test_get_symbol(self):
        model = (
            ModelBuilder("vector")
            .assume_each("z", 3, lambda v, i: Normal(float(i), 1.0))
            .build()
        )
        chain = run(model, Prior(), num_iterations=30)
        assert chain.get("z").shape == (30, 3)
        assert chain.get("z[2]").shape == (30,)
        assert set(chain.summary()) == {"z[0]", "z[1]", "z[2]"}

    def test_get_single_element_symbol(self):
        """A one-element vector keeps its column axis."""
        model = ModelBuilder("vector").assume_each("z", 1, lambda v, i: Normal(0.0, 1.0)).build()
        chain = run(model, Prior(), num_iterations=30)
        assert chain.get("z").shape == (30, 1)
        assert chain.get("z[0]").shape == (30,)

    def test_frozen(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=5)
        with pytest.raises(ConfigurationError):
            chain.append(chain.traces[0])

    def test_slice(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=30)
        part = chain.slice(10, 20)
        assert len(part) == 10
        assert np.array_equal(part.get("s"), chain.get("s")[10:20])

    def test_diagnostics(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=50)
        accepted = chain.diagnostic("accepted")
        assert accepted.shape == (50,)
        assert np.isclose(chain.acceptance_rate, accepted.mean())
        assert chain.num_divergent == 0

    def test_summary(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=200, random_seed=1)
        summary = chain.summary()
        assert set(summary) == {"s", "m"}
        stats = summary["m"]
        assert np.isclose(stats["mean"], chain.get("m").mean())
        assert "2.5%" in stats and "97.5%" in stats
        assert 0 < stats["ess"] <= 200

    def test_print_summary(self, gdemo, capsys):
        chain = run(gdemo, MH(0.5), num_iterations=50)
        chain.print_summary()
        out = capsys.readouterr().out
        assert "Posterior Summary" in out
        assert "R-hat" in out

    def test_mismatched_trace(self, gdemo):
        chain = run(gdemo, MH(0.5), num_iterations=5)
        other_model = ModelBuilder("gdemo").assume("s", Normal(1, 1)).build()
        other = run(other_model, MH(0.5), num_iterations=5)

        fresh = Chain("gdemo")
        fresh.append(chain.traces[0])
        with pytest.raises(ChainMismatchError):
            fresh.append(other.traces[0])


class TestMerge:

    def test_multichain_indexing(self, gdemo):
        chains = [run(gdemo, MH(0.5), num_iterations=20, random_seed=i) for i in range(3)]
        merged = merge(chains)
        assert isinstance(merged, MultiChain)
        assert merged.num_chains == 3
        assert len(merged) == 20
        assert merged.get("s").shape == (20, 3)
        assert merged[(5, 2)] is chains[2].traces[5]

    def test_different_models(self, gdemo):
        first = run(gdemo, MH(0.5), num_iterations=10)
        other_model = ModelBuilder("other").assume("s", Normal(0, 1)).build()
        second = run(other_model, MH(0.5), num_iterations=10)
        with pytest.raises(ChainMismatchError):
            merge([first, second])

    def test_different_identifiers(self, gdemo):
        first = run(gdemo, MH(0.5), num_iterations=10)
        reduced = (
            ModelBuilder("gdemo")
            .assume("s", Normal(1, 1))
            .assume("m", Normal(0, 1))
            .build()
        )
        second = run(reduced, MH(0.5), num_iterations=10)
        with pytest.raises(ChainMismatchError):
            merge([first, second])

    def test_unequal_lengths_are_truncated(self, gdemo):
        chains = [
            run(gdemo, MH(0.5), num_iterations=10),
            run(gdemo, MH(0.5), num_iterations=15),
        ]
        assert len(merge(chains)) == 10

    def test_empty(self):
        with pytest.raises(ChainMismatchError):
            merge([])


class TestDiagnostics:

    def test_rhat_of_agreeing_chains(self):
        draws = np.random.default_rng(0).normal(size=(2000, 4))
        assert abs(split_rhat(draws) - 1.0) < 0.01

    def test_rhat_detects_disagreement(self):
        rng = np.random.default_rng(1)
        draws = rng.normal(size=(1000, 2)) + np.array([0.0, 5.0])
        assert split_rhat(draws) > 1.5

    def test_ess_of_independent_draws(self):
        draws = np.random.default_rng(2).normal(size=4000)
        assert effective_sample_size(draws) > 3000

    def test_ess_of_correlated_draws(self):
        rng = np.random.default_rng(3)
        x = np.zeros(4000)
        for t in range(1, 4000):
            x[t] = 0.95 * x[t - 1] + rng.normal()
        # tau = (1 + rho) / (1 - rho) = 39
        assert effective_sample_size(x) < 400

    def test_constant_draws(self):
        assert split_rhat(np.ones((100, 2))) == 1.0
        assert effective_sample_size(np.ones(100)) == 100.0
