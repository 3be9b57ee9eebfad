"""No-U-Turn Sampler (NUTS) implementation using MLX.

Based on Hoffman & Gelman (2014): "The No-U-Turn Sampler: Adaptively
Setting Path Lengths in Hamiltonian Monte Carlo" (Algorithm 3, slice
sampling with dual-averaging step-size adaptation).
"""

import math
from collections import namedtuple
from dataclasses import dataclass, replace

import mlx.core as mx

from mlx_ppl.errors import ConfigurationError
from mlx_ppl.kernels.adaptation import DualAveraging
from mlx_ppl.kernels.base import Sampler, UnconstrainedTarget
from mlx_ppl.kernels.hmc import HMCState, finish_warmup, hamiltonian, leapfrog, sample_momentum

# Maximum energy difference to prevent infinite trajectories
DELTA_MAX = 1000.0

# One leapfrog state: position, momentum, gradient and log density
_Point = namedtuple("_Point", ["position", "momentum", "grad", "log_density"])

# A subtree: leftmost and rightmost points, candidate sample, number of
# states inside the slice, whether the subtree is still valid (no U-turn,
# no divergence) and the acceptance statistics for adaptation.
_Tree = namedtuple(
    "_Tree",
    ["minus", "plus", "proposal", "n", "valid", "alpha", "n_alpha", "divergent"],
)


def no_u_turn(minus, plus):
    """Check that the trajectory between ``minus`` and ``plus`` has not turned back.

    A U-turn is detected when the trajectory starts coming back toward itself.
    """
    dot_minus = 0.0
    dot_plus = 0.0
    for k in minus.position:
        delta = plus.position[k] - minus.position[k]
        dot_minus += float(mx.sum(delta * minus.momentum[k]))
        dot_plus += float(mx.sum(delta * plus.momentum[k]))
    return dot_minus >= 0 and dot_plus >= 0


def build_tree(value_and_grad, point, log_u, direction, depth, step_size, h0, key):
    """Recursively build tree of states using doubling procedure.

    Args:
        value_and_grad: Log density and gradient in unconstrained space
        point: State to extend from
        log_u: Log of the slice variable
        direction: Direction (+1 forward, -1 backward)
        depth: Tree depth (0 = single step, 1 = 2 steps, 2 = 4 steps, etc.)
        step_size: Step size
        h0: Hamiltonian at the start of the trajectory
        key: Random key for sampling

    Returns:
        A ``_Tree``.
    """
    if depth == 0:
        # Base case: single leapfrog step
        position, momentum, log_density, grad = leapfrog(
            value_and_grad, point.position, point.momentum, point.grad, direction * step_size
        )
        leaf = _Point(position, momentum, grad, log_density)
        h = hamiltonian(log_density, momentum)

        # Check if new state is in slice
        n = 1 if log_u <= -h else 0
        # Check if trajectory diverged
        valid = log_u < DELTA_MAX - h
        alpha = min(1.0, math.exp(h0 - h)) if math.isfinite(h) else 0.0
        return _Tree(leaf, leaf, leaf, n, valid, alpha, 1, not valid)

    # Recursion: build left and right subtrees
    key, subkey1, subkey2, subkey3 = mx.random.split(key, 4)
    tree = build_tree(value_and_grad, point, log_u, direction, depth - 1, step_size, h0, subkey1)
    if not tree.valid:
        return tree

    if direction == -1:
        other = build_tree(value_and_grad, tree.minus, log_u, direction, depth - 1, step_size, h0, subkey2)
        minus, plus = other.minus, tree.plus
    else:
        other = build_tree(value_and_grad, tree.plus, log_u, direction, depth - 1, step_size, h0, subkey2)
        minus, plus = tree.minus, other.plus

    # Sample uniformly from both subtrees
    proposal = tree.proposal
    n_total = tree.n + other.n
    if n_total > 0 and float(mx.random.uniform(key=subkey3)) < other.n / n_total:
        proposal = other.proposal

    valid = other.valid and no_u_turn(minus, plus)
    return _Tree(
        minus, plus, proposal, n_total, valid,
        tree.alpha + other.alpha, tree.n_alpha + other.n_alpha,
        tree.divergent or other.divergent,
    )


@dataclass
class NUTSState(HMCState):
    """HMC state plus the tree depth of the last trajectory."""

    tree_depth: int = 0


class NUTS(Sampler):
    """No-U-Turn Sampler (NUTS) for efficient HMC sampling.

    NUTS automatically tunes the trajectory length by building a binary tree
    of states and stopping when the trajectory starts to turn back on itself.
    This eliminates the need to manually specify num_leapfrog_steps.

    Args:
        step_size: Initial step size for leapfrog integrator.
        max_tree_depth: Maximum tree depth (2^depth leapfrog steps).
        adapt_step_size: Whether to adapt step size during warmup.
        target_accept: Target acceptance rate for step size adaptation (0.65 typical).
        variables: Latent variables to move (default: all).

    References:
        Hoffman, M. D., & Gelman, A. (2014). "The No-U-Turn Sampler".
        JMLR 15(1), 1593-1623.
    """

    name = "NUTS"

    def __init__(
        self,
        step_size=0.1,
        max_tree_depth=10,
        adapt_step_size=True,
        target_accept=0.65,
        variables=None,
    ):
        super().__init__(variables)
        self.step_size = step_size
        self.max_tree_depth = max_tree_depth
        self.adapt_step_size = adapt_step_size
        self.target_accept = target_accept

    def validate(self, model):
        super().validate(model)
        if not self.target_names(model):
            raise ConfigurationError("NUTS needs at least one latent variable")
        if not (isinstance(self.step_size, (int, float)) and self.step_size > 0):
            raise ConfigurationError(f"step_size must be positive, got {self.step_size!r}")
        if not (isinstance(self.max_tree_depth, int) and self.max_tree_depth > 0):
            raise ConfigurationError(f"max_tree_depth must be a positive integer, got {self.max_tree_depth!r}")
        if not 0 < self.target_accept < 1:
            raise ConfigurationError(f"target_accept must lie in (0, 1), got {self.target_accept!r}")

    def init_state(self, model, trace):
        UnconstrainedTarget(model, trace, self.target_names(model)).check_continuous(trace, self.name)
        adaptation = None
        if self.adapt_step_size:
            adaptation = DualAveraging(self.step_size, self.target_accept)
        return NUTSState(trace, float(self.step_size), adaptation)

    def step(self, model, state, key, warmup=False):
        state = finish_warmup(state, warmup)
        epsilon = state.step_size
        target = UnconstrainedTarget(model, state.trace, self.target_names(model))
        position = target.position(state.trace)
        log_density, grad = target.value_and_grad(position)

        # Sample momentum
        key, momentum_key, slice_key = mx.random.split(key, 3)
        momentum = sample_momentum(position, momentum_key)
        start = _Point(position, momentum, grad, log_density)

        # Slice variable u ~ Uniform(0, exp(-H0)), kept in log space
        h0 = hamiltonian(log_density, momentum)
        log_u = -h0 + math.log1p(-float(mx.random.uniform(key=slice_key)))

        # Initialize tree
        minus = plus = start
        proposal = start
        depth = 0  # Tree depth
        n = 1  # Number of valid states
        valid = True  # Is tree still valid?
        alpha_sum = 0.0
        n_alpha = 0
        divergent = False

        # Build tree until U-turn or max depth
        while valid and depth < self.max_tree_depth:
            key, subkey1, subkey2, subkey3 = mx.random.split(key, 4)
            direction = 1 if float(mx.random.uniform(key=subkey1)) < 0.5 else -1

            if direction == -1:
                tree = build_tree(target.value_and_grad, minus, log_u, direction, depth, epsilon, h0, subkey2)
                minus = tree.minus
            else:
                tree = build_tree(target.value_and_grad, plus, log_u, direction, depth, epsilon, h0, subkey2)
                plus = tree.plus

            # Accept proposal with probability n'/n
            if tree.valid:
                accept_prob = min(1.0, tree.n / max(n, 1.0))
                if float(mx.random.uniform(key=subkey3)) < accept_prob:
                    proposal = tree.proposal

            n += tree.n
            valid = tree.valid and no_u_turn(minus, plus)
            alpha_sum += tree.alpha
            n_alpha += tree.n_alpha
            divergent = divergent or tree.divergent
            depth += 1

        # Average acceptance probability over the trajectory
        accept_stat = alpha_sum / max(n_alpha, 1)

        if warmup and state.adaptation is not None:
            state = replace(state, step_size=state.adaptation.update(accept_stat))

        moved = proposal is not start
        trace = target.trace(proposal.position) if moved else state.trace
        info = {
            "log_density": float(trace.log_joint),
            "accepted": moved,
            "divergent": divergent,
            "acceptance_prob": accept_stat,
            "tree_depth": depth,
            "step_size": epsilon,
        }
        return replace(state, trace=trace, tree_depth=depth), info

    def __repr__(self):
        return (
            f"NUTS(step_size={self.step_size}, max_tree_depth={self.max_tree_depth}, "
            f"target_accept={self.target_accept}, variables={self.variables!r})"
        )
