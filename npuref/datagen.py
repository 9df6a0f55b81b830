"""Deterministic INT8 test-vector generation.

Every random stream comes from its own ``numpy.random.Generator``, built
from an explicit seed and passed explicitly.  There is no module-level
random state, so the same seed always yields the same bytes no matter
what was generated before it.
"""

import numpy as np

__all__ = ["make_rng", "random_i8", "seeded_i8_sequence", "sequential_i8"]

# Upper bound (exclusive) of a raw draw; each draw is folded mod 256
_DRAW_LIMIT = (1 << 31) - 1


def make_rng(seed: int) -> np.random.Generator:
    """Create an independent generator for ``seed``.

    Raises:
        ValueError: If ``seed`` is negative.
    """
    seed = int(seed)
    if seed < 0:
        raise ValueError(f"Seed must be >= 0, got {seed}")
    return np.random.default_rng(seed)


def random_i8(length: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``length`` int8 values as ``(draw % 256) - 128`` from ``rng``.

    Advances ``rng``; callers that need reproducible buffers should give
    each buffer its own generator (see :func:`seeded_i8_sequence`).
    """
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    draws = rng.integers(0, _DRAW_LIMIT, size=length, dtype=np.int64)
    return ((draws % 256) - 128).astype(np.int8)


def seeded_i8_sequence(length: int, seed: int) -> np.ndarray:
    """Reproducible int8 sequence; reseeds a fresh generator on every call."""
    return random_i8(length, make_rng(seed))


def sequential_i8(length: int, start: int = 0) -> np.ndarray:
    """Return ``start, start + 1, ...`` wrapped to int8."""
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    vals = (np.arange(length, dtype=np.int64) + int(start)) & 0xFF
    return vals.astype(np.uint8).view(np.int8)
