"""Memoization of deterministic sub-computations inside models."""

import functools

import mlx.core as mx
import numpy as np


def _freeze(arg):
    if isinstance(arg, mx.array):
        return ("mx", arg.shape, str(arg.dtype), tuple(np.array(arg).ravel().tolist()))
    if isinstance(arg, np.ndarray):
        return ("np", arg.shape, str(arg.dtype), tuple(arg.ravel().tolist()))
    if isinstance(arg, (list, tuple)):
        return tuple(_freeze(a) for a in arg)
    if isinstance(arg, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in arg.items()))
    return arg


def memoize(fn):
    """Cache ``fn`` by the value of its arguments.

    The cache is per process with overwrite-on-miss semantics and no
    eviction; it grows with the number of distinct inputs seen. Arrays are
    keyed by content, so only use this for functions of data or of values
    that repeat (discrete sites), not of continuously varying parameters.

    ``fn.cache`` exposes the dict and ``fn.cache_clear()`` empties it.
    """
    cache = {}

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        key = (_freeze(args), _freeze(kwargs))
        try:
            return cache[key]
        except KeyError:
            result = fn(*args, **kwargs)
            cache[key] = result
            return result

    wrapper.cache = cache
    wrapper.cache_clear = cache.clear
    return wrapper
