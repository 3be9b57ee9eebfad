"""Sample containers: single chains, merged multi-chains and summaries."""

import math

import numpy as np
from scipy.special import logsumexp

from mlx_ppl.errors import ChainMismatchError, ConfigurationError
from mlx_ppl.inference.diagnostics import effective_sample_size, split_rhat
from mlx_ppl.kernels.resampling import normalize_log_weights
from mlx_ppl.model.trace import VarName


def _columns(name, draws):
    """Split draws of one variable into labelled scalar columns."""
    draws = np.asarray(draws, dtype=float)
    n = draws.shape[0]
    chains = draws.shape[1] if draws.ndim > 1 else None
    per_draw = draws.shape[2:] if chains is not None else draws.shape[1:]
    if not per_draw:
        return [(str(name), draws)]
    flat = draws.reshape((n, chains, -1) if chains is not None else (n, -1))
    return [
        (f"{name}[{','.join(str(int(i)) for i in np.unravel_index(j, per_draw))}]", flat[..., j])
        for j in range(flat.shape[-1])
    ]


def _summarize(columns, credible_interval):
    alpha = 1 - credible_interval
    lower_pct = 100 * alpha / 2
    upper_pct = 100 * (1 - alpha / 2)

    summary = {}
    for label, draws in columns:
        pooled = draws.reshape(-1)
        summary[label] = {
            'mean': float(np.mean(pooled)),
            'std': float(np.std(pooled)),
            'median': float(np.median(pooled)),
            f'{lower_pct:.1f}%': float(np.percentile(pooled, lower_pct)),
            f'{upper_pct:.1f}%': float(np.percentile(pooled, upper_pct)),
            'ess': effective_sample_size(draws),
            'r_hat': split_rhat(draws),
        }
    return summary


def _print_table(title, summary, credible_interval, acceptance_rate, num_divergent):
    print(f"\n{title}")
    print("="*80)
    print(f"{'Parameter':<15} {'Mean':<10} {'Std':<10} {'Median':<10} "
          f"{f'{int(credible_interval*100)}% CI':<20} {'ESS':<8} {'R-hat':<6}")
    print("-"*80)

    for param_name, stats in summary.items():
        ci_lower = list(stats.values())[3]  # Lower percentile
        ci_upper = list(stats.values())[4]  # Upper percentile
        ci_str = f"[{ci_lower:.3f}, {ci_upper:.3f}]"

        print(f"{param_name:<15} {stats['mean']:<10.3f} {stats['std']:<10.3f} "
              f"{stats['median']:<10.3f} {ci_str:<20} {stats['ess']:<8.0f} {stats['r_hat']:<6.3f}")

    print("-"*80)
    print(f"Acceptance rate: {acceptance_rate:.2%}    Divergences: {num_divergent}")
    print("="*80)


class Chain:
    """
    The traces of one sampling run, one per iteration.

    A chain is appended to while sampling and frozen afterwards. Every
    trace must carry the same set of variable identifiers.

    Parameters
    ----------
    model_name : str
        Name of the model the chain was sampled from
    sampler : str, optional
        Description of the sampler (kept for display)

    Attributes
    ----------
    traces : list of Trace
    diagnostics : list of dict
        Per-iteration sampler diagnostics (``accepted``, ``divergent``,
        ``log_density`` and sampler-specific entries)
    stopped_early : bool
        True when sampling hit ``max_time`` before ``num_iterations``
    """

    def __init__(self, model_name, sampler=None):
        self.model_name = model_name
        self.sampler = sampler
        self.traces = []
        self.diagnostics = []
        self.names = None
        self.frozen = False
        self.stopped_early = False
        self.elapsed = None

    def append(self, trace, diagnostics=None):
        if self.frozen:
            raise ConfigurationError("cannot append to a frozen chain")
        names = trace.names()
        if self.names is None:
            self.names = names
        elif set(names) != set(self.names):
            raise ChainMismatchError(
                f"trace with variables {sorted(map(str, names))} does not match "
                f"chain variables {sorted(map(str, self.names))}"
            )
        self.traces.append(trace)
        self.diagnostics.append(dict(diagnostics or {}))
        return self

    def freeze(self):
        self.frozen = True
        return self

    def __len__(self):
        return len(self.traces)

    @property
    def num_iterations(self):
        return len(self.traces)

    @property
    def latent_names(self):
        if not self.traces:
            return []
        return self.traces[0].latent_names()

    def _select(self, name):
        """Identifiers for ``name``; a bare symbol selects all its elements."""
        name = VarName.parse(name)
        names = self.names or []
        if name in names:
            return [name]
        matches = [n for n in names if not name.indices and n.symbol == name.symbol]
        if not matches:
            raise KeyError(f"chain has no variable '{name}'")
        return matches

    def get(self, name):
        """
        Draws of one variable as a numpy array with one row per iteration.

        A bare symbol such as ``"x"`` gathers ``x[0], x[1], ...`` into
        columns, even when the symbol has a single element.
        """
        selected = self._select(name)
        if selected == [VarName.parse(name)]:
            return np.stack([np.array(t[selected[0]].value) for t in self.traces])
        return np.stack([
            np.stack([np.array(t[n].value) for n in selected]) for t in self.traces
        ])

    def __getitem__(self, name):
        return self.get(name)

    def slice(self, start=None, end=None):
        """Frozen sub-chain of iterations ``start`` to ``end``."""
        sub = Chain(self.model_name, self.sampler)
        sub.names = self.names
        sub.traces = self.traces[start:end]
        sub.diagnostics = self.diagnostics[start:end]
        sub.stopped_early = self.stopped_early
        return sub.freeze()

    def diagnostic(self, key):
        """Per-iteration values of a sampler diagnostic (NaN where absent)."""
        return np.array([d.get(key, np.nan) for d in self.diagnostics], dtype=float)

    @property
    def acceptance_rate(self):
        if not self.diagnostics:
            return float("nan")
        return float(np.mean(self.diagnostic("accepted")))

    @property
    def num_divergent(self):
        return int(np.nansum(self.diagnostic("divergent")))

    def _log_weights(self):
        if not self.diagnostics or "log_weight" not in self.diagnostics[0]:
            return None
        return self.diagnostic("log_weight")

    def weighted_mean(self, name):
        """Mean of ``name`` under the importance weights, if the sampler produced any."""
        draws = np.asarray(self.get(name), dtype=float)
        log_weights = self._log_weights()
        if log_weights is None:
            return draws.mean(axis=0)
        if not np.any(np.isfinite(log_weights)):
            raise ConfigurationError("every importance weight is zero")
        weights = np.exp(normalize_log_weights(log_weights))
        return np.tensordot(weights, draws, axes=1)

    @property
    def log_evidence(self):
        """Estimate of log p(observations).

        From the importance weights of an ``Importance`` chain, or from the
        per-sweep estimates of an ``SMC`` chain.
        """
        estimates = self._log_weights()
        if estimates is None:
            if not self.diagnostics or "log_evidence" not in self.diagnostics[0]:
                raise ConfigurationError(
                    "log evidence needs an Importance or SMC chain"
                )
            estimates = self.diagnostic("log_evidence")
        return float(logsumexp(estimates) - math.log(len(estimates)))

    def summary(self, credible_interval=0.95):
        """
        Compute summary statistics for the latent variables.

        Parameters
        ----------
        credible_interval : float, optional
            Credible interval width (default: 0.95 for 95% CI)

        Returns
        -------
        summary : dict
            Dictionary with summary statistics for each parameter
        """
        if not self.traces:
            raise ValueError("Chain is empty. Run sampling first.")
        columns = []
        for name in self.latent_names:
            columns.extend(_columns(name, self.get(name)))
        return _summarize(columns, credible_interval)

    def print_summary(self, credible_interval=0.95):
        """Print summary statistics in a formatted table."""
        _print_table(
            f"Posterior Summary ({self.model_name}, {len(self)} iterations):",
            self.summary(credible_interval), credible_interval,
            self.acceptance_rate, self.num_divergent,
        )

    def __repr__(self):
        return (
            f"Chain(model={self.model_name!r}, iterations={len(self)}, "
            f"variables={[str(n) for n in self.latent_names]})"
        )


class MultiChain:
    """
    Independent chains of the same model, indexed by ``(iteration, chain_id)``.

    ``get(name)`` returns an array of shape ``(num_iterations, num_chains, ...)``
    and ``summary`` reports the split R-hat across chains.
    """

    def __init__(self, chains):
        self.chains = list(chains)
        self.model_name = self.chains[0].model_name
        self.names = self.chains[0].names

    @property
    def num_chains(self):
        return len(self.chains)

    def __len__(self):
        return len(self.chains[0])

    @property
    def num_iterations(self):
        return len(self)

    @property
    def latent_names(self):
        return self.chains[0].latent_names

    @property
    def stopped_early(self):
        return any(c.stopped_early for c in self.chains)

    def get(self, name):
        return np.stack([c.get(name) for c in self.chains], axis=1)

    def __getitem__(self, index):
        if isinstance(index, tuple):
            iteration, chain_id = index
            return self.chains[chain_id].traces[iteration]
        return self.get(index)

    def slice(self, start=None, end=None):
        return MultiChain([c.slice(start, end) for c in self.chains])

    def diagnostic(self, key):
        return np.stack([c.diagnostic(key) for c in self.chains], axis=1)

    @property
    def acceptance_rate(self):
        return float(np.mean(self.diagnostic("accepted")))

    @property
    def num_divergent(self):
        return sum(c.num_divergent for c in self.chains)

    def summary(self, credible_interval=0.95):
        """Pooled statistics; ``ess`` and ``r_hat`` use all chains."""
        columns = []
        for name in self.latent_names:
            columns.extend(_columns(name, self.get(name)))
        return _summarize(columns, credible_interval)

    def print_summary(self, credible_interval=0.95):
        _print_table(
            f"Posterior Summary ({self.model_name}, {self.num_chains} chains x "
            f"{len(self)} iterations):",
            self.summary(credible_interval), credible_interval,
            self.acceptance_rate, self.num_divergent,
        )

    def __repr__(self):
        return (
            f"MultiChain(model={self.model_name!r}, chains={self.num_chains}, "
            f"iterations={len(self)})"
        )


def merge(chains):
    """
    Combine independent chains of the same model into a ``MultiChain``.

    Chains that stopped early are truncated to the shortest length.

    Raises
    ------
    ChainMismatchError
        If the chains come from different models or carry different
        variable identifiers.
    """
    chains = list(chains)
    if not chains:
        raise ChainMismatchError("merge needs at least one chain")
    first = chains[0]
    for chain in chains[1:]:
        if chain.model_name != first.model_name:
            raise ChainMismatchError(
                f"cannot merge chains of models '{first.model_name}' and '{chain.model_name}'"
            )
        if set(chain.names or []) != set(first.names or []):
            raise ChainMismatchError("cannot merge chains with different variables")
    length = min(len(c) for c in chains)
    if any(len(c) != length for c in chains):
        chains = [c.slice(0, length) for c in chains]
    return MultiChain([c.freeze() for c in chains])
