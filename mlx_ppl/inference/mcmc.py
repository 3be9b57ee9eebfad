"""Sampling driver and high-level MCMC inference interface."""

import pickle
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor

import mlx.core as mx
import numpy as np

from mlx_ppl.errors import ConfigurationError
from mlx_ppl.inference.chain import Chain, merge

PARALLEL_MODES = ("none", "threaded", "distributed")

# Print progress every this many iterations when verbose
PROGRESS_EVERY = 500


def chain_seeds(random_seed, num_chains):
    """Independent integer seeds, one per chain."""
    children = np.random.SeedSequence(random_seed).spawn(num_chains)
    return [int(child.generate_state(1)[0]) for child in children]


def sample_chain(
    model,
    sampler,
    num_iterations,
    num_warmup=0,
    init=None,
    seed=0,
    max_time=None,
    verbose=False,
    chain_id=0,
):
    """
    Run one chain of ``sampler`` on ``model``.

    Warm-up iterations let the sampler adapt and are not recorded. The
    chain keeps every completed iteration if ``max_time`` (seconds,
    checked between iterations) runs out; it then has ``stopped_early``.

    Returns
    -------
    chain : Chain
        Frozen chain of ``num_iterations`` traces (fewer if stopped early)
    """
    key = mx.random.key(seed)
    key, init_key = mx.random.split(key)
    state = sampler.initialize(model, init_key, init=init)

    chain = Chain(model.name, repr(sampler))
    label = f"[chain {chain_id}] " if verbose else ""
    start = time.time()

    def out_of_time():
        return max_time is not None and time.time() - start > max_time

    # Warmup phase
    if num_warmup > 0 and verbose:
        print(f"{label}Warmup phase: {num_warmup} samples")
    n_accept = 0
    for i in range(num_warmup):
        if out_of_time():
            chain.stopped_early = True
            break
        key, subkey = mx.random.split(key)
        state, info = sampler.step(model, state, subkey, warmup=True)
        n_accept += bool(info["accepted"])
        if verbose and (i + 1) % PROGRESS_EVERY == 0:
            print(f"{label}  Iteration {i+1}/{num_warmup} (accept rate: {100*n_accept/(i+1):.2f}%)")

    # Sampling phase
    if verbose:
        print(f"{label}Sampling phase: {num_iterations} samples")
    n_accept = 0
    for i in range(num_iterations):
        if chain.stopped_early or out_of_time():
            chain.stopped_early = True
            break
        key, subkey = mx.random.split(key)
        state, info = sampler.step(model, state, subkey)
        chain.append(state.trace, info)
        n_accept += bool(info["accepted"])
        if verbose and (i + 1) % PROGRESS_EVERY == 0:
            print(f"{label}  Iteration {i+1}/{num_iterations} (accept rate: {100*n_accept/(i+1):.2f}%)")

    chain.elapsed = time.time() - start
    if verbose:
        if chain.stopped_early:
            print(f"{label}Stopped after {len(chain)} iterations (max_time={max_time}s)")
        if len(chain):
            print(f"{label}Sampling acceptance rate: {100*chain.acceptance_rate:.2f}%")
    return chain.freeze()


def _check_positive_int(name, value, minimum=1):
    if not isinstance(value, (int, np.integer)) or isinstance(value, bool) or value < minimum:
        raise ConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")


def _chain_inits(init, num_chains):
    if init is None or isinstance(init, dict):
        return [init] * num_chains
    inits = list(init)
    if len(inits) != num_chains:
        raise ConfigurationError(
            f"got {len(inits)} initial values for {num_chains} chains"
        )
    return inits


def run(
    model,
    sampler,
    num_iterations,
    num_chains=1,
    parallel="none",
    num_warmup=0,
    init=None,
    random_seed=0,
    max_time=None,
    verbose=False,
):
    """
    Draw samples from the posterior of ``model``.

    Parameters
    ----------
    model : Model
        Model built with ``ModelBuilder``
    sampler : Sampler
        Configured sampler, e.g. ``NUTS()`` or ``Gibbs(...)``
    num_iterations : int
        Number of recorded iterations per chain
    num_chains : int, optional
        Number of independent chains (default: 1)
    parallel : str, optional
        ``"none"`` (sequential), ``"threaded"`` or ``"distributed"``
        (one process per chain; model and sampler must be picklable)
    num_warmup : int, optional
        Adaptation iterations per chain, not recorded (default: 0)
    init : dict or list of dict, optional
        Initial values, shared by all chains or one mapping per chain
    random_seed : int, optional
        Random seed for reproducibility (default: 0)
    max_time : float, optional
        Wall-clock limit per chain in seconds
    verbose : bool, optional
        If True, print progress information (default: False)

    Returns
    -------
    Chain when ``num_chains == 1``, otherwise a MultiChain.

    Raises
    ------
    ConfigurationError
        For invalid arguments or a sampler that cannot run on ``model``,
        before any sampling starts.
    """
    _check_positive_int("num_iterations", num_iterations)
    _check_positive_int("num_chains", num_chains)
    _check_positive_int("num_warmup", num_warmup, minimum=0)
    if parallel not in PARALLEL_MODES:
        raise ConfigurationError(f"parallel must be one of {PARALLEL_MODES}, got {parallel!r}")
    if max_time is not None and not max_time > 0:
        raise ConfigurationError(f"max_time must be positive, got {max_time!r}")
    inits = _chain_inits(init, num_chains)
    sampler.validate(model)

    if parallel == "distributed":
        try:
            pickle.dumps((model, sampler, inits))
        except (pickle.PicklingError, AttributeError, TypeError) as exc:
            raise ConfigurationError(
                "distributed sampling needs a picklable model and sampler; "
                f"use module-level functions as distribution factories ({exc})"
            ) from None

    if verbose:
        print(f"\n{'='*70}")
        print(f"MLX-PPL: {sampler.name} Sampling ({num_chains} chain{'s' if num_chains > 1 else ''})")
        print(f"{'='*70}\n")

    seeds = chain_seeds(random_seed, num_chains)
    jobs = [
        (model, sampler, num_iterations, num_warmup, inits[i], seeds[i], max_time, verbose, i)
        for i in range(num_chains)
    ]

    if parallel == "none" or num_chains == 1:
        chains = [sample_chain(*job) for job in jobs]
    else:
        executor_cls = ThreadPoolExecutor if parallel == "threaded" else ProcessPoolExecutor
        with executor_cls(max_workers=num_chains) as executor:
            futures = [executor.submit(sample_chain, *job) for job in jobs]
            chains = [f.result() for f in futures]

    if verbose:
        print(f"\n{'='*70}")
        print("Sampling complete!")
        print(f"{'='*70}\n")

    if num_chains == 1:
        return chains[0]
    return merge(chains)


class MCMC:
    """High-level MCMC inference interface.

    Binds a model to a sampler and keeps the result of the last run.

    Parameters
    ----------
    model : Model
        Model to sample from
    sampler : Sampler, optional
        Sampler to use (default: NUTS())

    Examples
    --------
    >>> from mlx_ppl import ModelBuilder, Normal, MCMC, NUTS
    >>>
    >>> model = (
    ...     ModelBuilder("mean")
    ...     .assume("mu", Normal(0, 10))
    ...     .observe_each("y", lambda v, i: Normal(v["mu"], 1.0), [1.2, 0.8, 1.1])
    ...     .build()
    ... )
    >>> mcmc = MCMC(model, NUTS())
    >>> samples = mcmc.run(num_samples=1000)
    >>> print(f"Mean: {np.mean(samples['mu']):.3f}")
    """

    def __init__(self, model, sampler=None):
        if sampler is None:
            from mlx_ppl.kernels.nuts import NUTS
            sampler = NUTS()
        self.model = model
        self.sampler = sampler
        self.chain = None
        self.samples = None
        self.acceptance_rate = None

    def run(
        self,
        num_samples=1000,
        num_warmup=1000,
        num_chains=1,
        parallel="none",
        init=None,
        random_seed=0,
        max_time=None,
        verbose=True,
    ):
        """
        Run sampling and return the draws of every latent variable.

        Returns
        -------
        samples : dict
            Dictionary of samples {name: np.array of values}; with several
            chains each array has shape ``(num_samples, num_chains, ...)``
        """
        self.chain = run(
            self.model,
            self.sampler,
            num_samples,
            num_chains=num_chains,
            parallel=parallel,
            num_warmup=num_warmup,
            init=init,
            random_seed=random_seed,
            max_time=max_time,
            verbose=verbose,
        )
        self.samples = {str(n): self.chain.get(n) for n in self.chain.latent_names}
        self.acceptance_rate = self.chain.acceptance_rate
        return self.samples

    def summary(self, credible_interval=0.95):
        """
        Compute summary statistics for samples.

        Raises
        ------
        ValueError
            If sampling hasn't been run yet
        """
        if self.chain is None:
            raise ValueError("Must run sampling first. Call run() method.")
        return self.chain.summary(credible_interval)

    def print_summary(self, credible_interval=0.95):
        """Print summary statistics in a formatted table."""
        if self.chain is None:
            raise ValueError("Must run sampling first. Call run() method.")
        self.chain.print_summary(credible_interval)
