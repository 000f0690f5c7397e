# lsystem_trees/kernel/random_stream.py
"""Seedable random stream used by every stochastic stage of the pipeline."""

import numpy as np
from typing import Optional


class RandomStream:
    """
    Explicitly seeded random source (numpy PCG64).

    Each generator, interpreter and builder owns its own stream; nothing
    touches numpy's global random state. PCG64 output is identical across
    platforms, so a fixed seed reproduces the same tree everywhere.

    Parameters:
    -----------
    seed : int
        Non-zero seeds are deterministic. Seed 0 draws fresh OS entropy.
    """

    def __init__(self, seed: int = 0):
        self.seed = 0
        self._rng: Optional[np.random.Generator] = None
        self.initialize(seed)

    def initialize(self, seed: int) -> None:
        """Reset the stream to the start of the sequence for `seed`."""
        self.seed = int(seed)
        self._rng = np.random.default_rng(self.seed if self.seed != 0 else None)

    def frand(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._rng.random())

    def frand_range(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        return low + (high - low) * self.frand()

    def rand_range(self, low: int, high: int) -> int:
        """Uniform integer in [low, high] (both inclusive)."""
        return int(self._rng.integers(low, high + 1))
