"""Exceptions raised by MLX-PPL.

Configuration errors subclass ``ValueError`` so callers that already catch
``ValueError`` for bad arguments keep working. Numerical problems during
sampling (non-finite densities, divergent trajectories) never raise; they are
recorded as per-iteration diagnostics on the chain.
"""


class PPLError(Exception):
    """Base class for all MLX-PPL errors."""


class ConfigurationError(PPLError, ValueError):
    """Malformed sampler or run parameters, raised before sampling starts."""


class ChainMismatchError(ConfigurationError):
    """Chains built from different models or variable sets were combined."""


class ModelError(PPLError):
    """A structurally invalid model (duplicate sites, bad declarations)."""


class DependencyError(ModelError):
    """A declaration read a variable that is not resolved yet."""
