"""Hamiltonian Monte Carlo (HMC) kernels implemented with MLX gradients."""

import math
from dataclasses import dataclass, replace
from typing import Optional

import mlx.core as mx

from mlx_ppl.errors import ConfigurationError
from mlx_ppl.kernels.adaptation import DualAveraging
from mlx_ppl.kernels.base import Sampler, UnconstrainedTarget, is_finite, tree_is_finite
from mlx_ppl.model.trace import Trace

# Energy error beyond which a trajectory counts as divergent
DIVERGENCE_THRESHOLD = 1000.0

# Upper bound on leapfrog steps per HMCDA trajectory
MAX_LEAPFROG_STEPS = 1000


def kinetic_energy(momentum):
    """0.5 * ||p||^2 for a unit mass matrix."""
    return 0.5 * sum(mx.sum(p ** 2) for p in momentum.values())


def hamiltonian(log_density, momentum):
    """Compute Hamiltonian H(q, p) = -log p(q) + 0.5 * ||p||^2.

    Returned as a float; NaN energies are reported as +inf.
    """
    energy = float(-log_density + kinetic_energy(momentum))
    return math.inf if math.isnan(energy) else energy


def leapfrog(value_and_grad, position, momentum, grad, step_size):
    """Single leapfrog integration step.

    Args:
        value_and_grad: Function returning (log density, gradient dict).
        position: Current position (dict of arrays).
        momentum: Current momentum values.
        grad: Gradient of the log density at ``position``.
        step_size: Step size (negative to integrate backwards).

    Returns:
        New position, momentum, log density and gradient.
    """
    # Half step for momentum
    momentum = {k: momentum[k] + 0.5 * step_size * grad[k] for k in position}

    # Full step for position
    position = {k: position[k] + step_size * momentum[k] for k in position}

    # Half step for momentum
    log_density, grad = value_and_grad(position)
    momentum = {k: momentum[k] + 0.5 * step_size * grad[k] for k in position}

    mx.eval(position, momentum, log_density, grad)
    return position, momentum, log_density, grad


def integrate(value_and_grad, position, momentum, grad, step_size, num_steps):
    """Run ``num_steps`` leapfrog steps, stopping early on a non-finite density."""
    log_density = None
    for _ in range(num_steps):
        position, momentum, log_density, grad = leapfrog(
            value_and_grad, position, momentum, grad, step_size
        )
        if not is_finite(log_density):
            break
    return position, momentum, log_density, grad


def sample_momentum(position, key):
    keys = mx.random.split(key, len(position))
    return {
        k: mx.random.normal(position[k].shape, key=subkey)
        for k, subkey in zip(position, keys)
    }


@dataclass
class HMCState:
    trace: Trace
    step_size: float
    adaptation: Optional[DualAveraging] = None
    adapted: bool = False


class HMC(Sampler):
    """Hamiltonian Monte Carlo sampler using gradient information.

    HMC uses the gradient of the log probability to efficiently explore
    the posterior distribution. It simulates Hamiltonian dynamics where
    parameters are particle positions and introduces auxiliary momentum
    variables. Bounded variables are moved in unconstrained space (log for
    positive supports, logit for intervals) and the Jacobian of that map is
    part of the target.

    Args:
        step_size: Step size for the leapfrog integrator.
        num_leapfrog_steps: Number of leapfrog steps per HMC iteration.
        adapt_step_size: Whether to adapt step size during warmup (dual averaging).
        target_accept: Target acceptance rate for step size adaptation.
        variables: Latent variables to move (default: all).
    """

    name = "HMC"

    def __init__(
        self,
        step_size=0.1,
        num_leapfrog_steps=10,
        adapt_step_size=False,
        target_accept=0.8,
        variables=None,
    ):
        super().__init__(variables)
        self.step_size = step_size
        self.num_leapfrog_steps = num_leapfrog_steps
        self.adapt_step_size = adapt_step_size
        self.target_accept = target_accept

    def validate(self, model):
        super().validate(model)
        if not self.target_names(model):
            raise ConfigurationError(f"{self.name} needs at least one latent variable")
        if not (isinstance(self.step_size, (int, float)) and self.step_size > 0):
            raise ConfigurationError(f"step_size must be positive, got {self.step_size!r}")
        if not 0 < self.target_accept < 1:
            raise ConfigurationError(f"target_accept must lie in (0, 1), got {self.target_accept!r}")
        self._validate_trajectory()

    def _validate_trajectory(self):
        if not (isinstance(self.num_leapfrog_steps, int) and self.num_leapfrog_steps > 0):
            raise ConfigurationError(
                f"num_leapfrog_steps must be a positive integer, got {self.num_leapfrog_steps!r}"
            )

    def _num_steps(self, step_size):
        return self.num_leapfrog_steps

    def init_state(self, model, trace):
        UnconstrainedTarget(model, trace, self.target_names(model)).check_continuous(trace, self.name)
        adaptation = None
        if self.adapt_step_size:
            adaptation = DualAveraging(self.step_size, self.target_accept)
        return HMCState(trace, float(self.step_size), adaptation)

    def step(self, model, state, key, warmup=False):
        state = finish_warmup(state, warmup)
        target = UnconstrainedTarget(model, state.trace, self.target_names(model))
        position = target.position(state.trace)
        log_density, grad = target.value_and_grad(position)

        key, momentum_key, accept_key = mx.random.split(key, 3)
        momentum = sample_momentum(position, momentum_key)
        h_init = hamiltonian(log_density, momentum)

        new_position, new_momentum, new_log_density, new_grad = integrate(
            target.value_and_grad, position, momentum, grad,
            state.step_size, self._num_steps(state.step_size),
        )
        h_prop = hamiltonian(new_log_density, new_momentum)

        delta = h_prop - h_init
        divergent = (
            not math.isfinite(delta) or delta > DIVERGENCE_THRESHOLD
            or not tree_is_finite(new_grad)
        )
        accept_prob = 0.0 if divergent else min(1.0, math.exp(-delta))
        accepted = float(mx.random.uniform(key=accept_key)) < accept_prob

        if warmup and state.adaptation is not None:
            state = replace(state, step_size=state.adaptation.update(accept_prob))

        trace = target.trace(new_position) if accepted else state.trace
        info = {
            "log_density": float(trace.log_joint),
            "accepted": accepted,
            "divergent": divergent,
            "acceptance_prob": accept_prob,
            "energy_error": delta,
            "step_size": state.step_size,
        }
        return replace(state, trace=trace), info

    def __repr__(self):
        return (
            f"{self.name}(step_size={self.step_size}, "
            f"num_leapfrog_steps={self.num_leapfrog_steps}, variables={self.variables!r})"
        )


class HMCDA(HMC):
    """HMC with dual-averaging step-size adaptation (Hoffman & Gelman, Alg. 5).

    The trajectory length λ is fixed and the number of leapfrog steps is
    ``max(1, round(λ / ε))`` for the current step size ε. The step size is
    adapted during warm-up and frozen at its running average afterwards.
    """

    name = "HMCDA"

    def __init__(self, step_size=0.1, trajectory_length=1.0, target_accept=0.65, variables=None):
        super().__init__(
            step_size=step_size,
            num_leapfrog_steps=None,
            adapt_step_size=True,
            target_accept=target_accept,
            variables=variables,
        )
        self.trajectory_length = trajectory_length

    def _validate_trajectory(self):
        if not (isinstance(self.trajectory_length, (int, float)) and self.trajectory_length > 0):
            raise ConfigurationError(
                f"trajectory_length must be positive, got {self.trajectory_length!r}"
            )

    def _num_steps(self, step_size):
        return min(MAX_LEAPFROG_STEPS, max(1, round(self.trajectory_length / step_size)))

    def __repr__(self):
        return (
            f"HMCDA(step_size={self.step_size}, trajectory_length={self.trajectory_length}, "
            f"target_accept={self.target_accept}, variables={self.variables!r})"
        )


def finish_warmup(state, warmup):
    """Switch to the averaged step size on the first post-warm-up step."""
    if warmup or state.adaptation is None or state.adapted:
        return state
    if state.adaptation.iteration == 0:
        return replace(state, adapted=True)
    return replace(state, step_size=state.adaptation.final_step_size, adapted=True)
