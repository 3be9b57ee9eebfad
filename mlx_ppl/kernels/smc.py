"""Sequential Monte Carlo and particle Gibbs.

Particles are partial model executions. A sweep advances every particle from
one observed site to the next, reweights it by that observation's
likelihood, and resamples the population whenever the effective sample size
drops below ``resample_threshold * num_particles``.

Particle Gibbs runs the same sweep conditionally on a reference trajectory
(the previous sample): the last particle replays the reference values and is
never resampled away, which makes the kernel leave the posterior invariant.
"""

import math
from dataclasses import dataclass

import mlx.core as mx
import numpy as np
from scipy.special import logsumexp

from mlx_ppl.distributions.base import numpy_rng
from mlx_ppl.errors import ConfigurationError
from mlx_ppl.kernels.base import Sampler, fixed_values, is_finite
from mlx_ppl.kernels.resampling import (
    RESAMPLERS,
    effective_sample_size,
    normalize_log_weights,
    resample,
)
from mlx_ppl.model.context import Condition
from mlx_ppl.model.execution import Execution
from mlx_ppl.model.trace import Trace


class ParticleArena:
    """A particle population with explicit ancestry.

    ``particles[i]`` is the execution of particle ``i``. Every resampling
    event appends an array to ``ancestry`` whose entry ``i`` is the index
    (in the previous generation) of the parent of the new particle ``i``.
    Resampled particles are forked, never shared, so particles cannot alias
    each other's traces.
    """

    def __init__(self, particles, conditioned=()):
        self.particles = list(particles)
        self.conditioned = frozenset(conditioned)
        self.log_weights = np.zeros(len(self.particles))
        self.ancestry = []
        self.log_evidence = 0.0

    def __len__(self):
        return len(self.particles)

    def _score(self, trace):
        """Log density of the observed and conditioned sites visited so far."""
        score = float(trace.log_likelihood)
        for name in self.conditioned:
            if name in trace:
                score += float(trace[name].log_prob)
        return score

    def advance(self, stop):
        """Run every particle up to declaration ``stop``, reweighting it.

        The weight picks up the likelihood of observed sites and the density
        of latent sites held at ``conditioned`` values (the variables other
        Gibbs groups own), so a conditional sweep targets the full
        conditional of its group.
        """
        for i, particle in enumerate(self.particles):
            before = self._score(particle.trace)
            particle.advance(stop)
            increment = self._score(particle.trace) - before
            self.log_weights[i] += increment if not math.isnan(increment) else -math.inf

    def effective_sample_size(self):
        return effective_sample_size(self.log_weights)

    def resample(self, method, rng, keys, contexts, keep_last=False):
        """Replace the population by ``len(self)`` draws proportional to weight.

        ``contexts[i]`` is the context the new particle ``i`` continues
        with. With ``keep_last`` the final slot keeps its own lineage (the
        reference particle of conditional SMC).
        """
        n = len(self)
        self.log_evidence += float(logsumexp(self.log_weights) - math.log(n))
        ancestors = resample(self.log_weights, n, method, rng)
        if keep_last:
            ancestors[-1] = n - 1
        self.particles = [
            self.particles[a].copy(key=keys[i], context=contexts[i])
            for i, a in enumerate(ancestors)
        ]
        self.log_weights = np.zeros(n)
        self.ancestry.append(ancestors)

    def finish(self):
        n = len(self)
        self.log_evidence += float(logsumexp(self.log_weights) - math.log(n))
        return self

    def lineage(self, index):
        """Ancestor indices of particle ``index``, from the first generation on."""
        path = [index]
        for ancestors in reversed(self.ancestry):
            path.append(int(ancestors[path[-1]]))
        return path[::-1]

    def num_unique_ancestors(self):
        """Distinct first-generation ancestors of the current population."""
        return len({self.lineage(i)[0] for i in range(len(self))})

    def select(self, rng):
        """Draw one particle index in proportion to the final weights."""
        weights = np.exp(normalize_log_weights(self.log_weights))
        return int(rng.choice(len(self), p=weights / weights.sum()))


def observation_barriers(model, conditioned=()):
    """Declaration indices at which a sweep pauses to reweight and resample.

    A sweep pauses after every observed site and after every latent site in
    ``conditioned``.
    """
    conditioned = set(conditioned)
    n = len(model.declarations)
    barriers = [
        i + 1 for i, decl in enumerate(model.declarations)
        if decl.is_observed or decl.name in conditioned
    ]
    if not barriers or barriers[-1] != n:
        barriers.append(n)
    return barriers


def particle_sweep(model, num_particles, key, fixed, method, threshold, reference=None):
    """Run one (conditional) SMC sweep and return the final ``ParticleArena``.

    ``fixed`` holds values of latent variables outside the sampled group.
    ``reference`` holds the reference particle's values for the group;
    when given, the last particle replays them.
    """
    free = Condition(fixed)
    contexts = [free] * num_particles
    if reference is not None:
        contexts[-1] = Condition({**fixed, **reference})

    key, *init_keys = mx.random.split(key, num_particles + 1)
    arena = ParticleArena(
        [Execution(model, contexts[i], key=init_keys[i]) for i in range(num_particles)],
        conditioned=fixed,
    )

    barriers = observation_barriers(model, conditioned=fixed)
    for stop in barriers:
        arena.advance(stop)
        if stop == barriers[-1]:
            break
        ess = arena.effective_sample_size()
        if ess < threshold * num_particles:
            key, rng_key, *fork_keys = mx.random.split(key, num_particles + 2)
            arena.resample(
                method, numpy_rng(rng_key), fork_keys, contexts,
                keep_last=reference is not None,
            )
    return arena.finish()


@dataclass
class ParticleState:
    trace: Trace
    log_evidence: float = 0.0


class SMC(Sampler):
    """Sequential Monte Carlo.

    Each step runs an independent sweep of ``num_particles`` particles and
    emits one particle drawn by final weight, together with the sweep's
    log-evidence estimate.

    Parameters
    ----------
    num_particles : int
        Population size, at least 1.
    resampler : str
        ``"multinomial"``, ``"residual"``, ``"stratified"`` or ``"systematic"``.
    resample_threshold : float
        Resample when ESS < threshold * num_particles; in (0, 1].
    """

    name = "SMC"
    gibbs_component = False

    def __init__(self, num_particles=100, resampler="systematic", resample_threshold=0.5):
        super().__init__(variables=None)
        self.num_particles = num_particles
        self.resampler = resampler
        self.resample_threshold = resample_threshold

    def validate(self, model):
        super().validate(model)
        if not (isinstance(self.num_particles, int) and self.num_particles >= 1):
            raise ConfigurationError(f"num_particles must be a positive integer, got {self.num_particles!r}")
        if self.resampler not in RESAMPLERS:
            raise ConfigurationError(
                f"Unknown resampling method: {self.resampler!r} (choose from {sorted(RESAMPLERS)})"
            )
        if not 0 < self.resample_threshold <= 1:
            raise ConfigurationError(
                f"resample_threshold must lie in (0, 1], got {self.resample_threshold!r}"
            )

    def initialize(self, model, key, trace=None, init=None):
        if trace is not None:
            return self.init_state(model, trace)
        sweep_key, select_key = mx.random.split(key)
        arena = self._sweep(model, sweep_key, {})
        if not is_finite(arena.log_evidence):
            raise ConfigurationError(
                f"every particle has zero weight under model '{model.name}'"
            )
        index = arena.select(numpy_rng(select_key))
        return ParticleState(arena.particles[index].trace, arena.log_evidence)

    def init_state(self, model, trace):
        return ParticleState(trace)

    def _sweep(self, model, key, fixed, reference=None):
        return particle_sweep(
            model, self.num_particles, key, fixed,
            self.resampler, self.resample_threshold, reference,
        )

    def _fixed(self, model, trace):
        return {}

    def _reference(self, model, trace):
        return None

    def step(self, model, state, key, warmup=False):
        sweep_key, select_key = mx.random.split(key)
        arena = self._sweep(
            model, sweep_key,
            self._fixed(model, state.trace),
            self._reference(model, state.trace),
        )
        accepted = is_finite(arena.log_evidence)
        if accepted:
            index = arena.select(numpy_rng(select_key))
            state = ParticleState(arena.particles[index].trace, arena.log_evidence)
        info = {
            "log_density": float(state.trace.log_joint),
            "accepted": accepted,
            "divergent": False,
            "log_evidence": arena.log_evidence,
            "ess": effective_sample_size(arena.log_weights),
            "num_resamples": len(arena.ancestry),
            "num_unique_ancestors": arena.num_unique_ancestors(),
        }
        return state, info

    def __repr__(self):
        return (
            f"{self.name}(num_particles={self.num_particles}, resampler={self.resampler!r}, "
            f"resample_threshold={self.resample_threshold}, variables={self.variables!r})"
        )


class PG(SMC):
    """Particle Gibbs: conditional SMC around the current trace.

    Usable on its own or as a ``Gibbs`` component, e.g. for discrete
    variables next to an HMC block for the continuous ones.
    """

    name = "PG"
    gibbs_component = True

    def __init__(self, num_particles=100, resampler="systematic", resample_threshold=0.5, variables=None):
        super().__init__(num_particles, resampler, resample_threshold)
        self.variables = variables

    def initialize(self, model, key, trace=None, init=None):
        return Sampler.initialize(self, model, key, trace=trace, init=init)

    def _fixed(self, model, trace):
        return fixed_values(trace, exclude=self.target_names(model))

    def _reference(self, model, trace):
        return {name: trace[name].value for name in self.target_names(model)}
