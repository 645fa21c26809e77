"""Seedable random source shared by every stochastic draw in the model."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """
    Thin wrapper over a NumPy ``Generator``.

    A single instance is threaded through the tender generator, the players,
    the evaluator panel and the learning engine, so one seed reproduces a
    whole run. Tests inject their own instance (or generator) to pin draws.
    """

    def __init__(self, seed: Optional[int] = None, generator: Optional[np.random.Generator] = None):
        if generator is not None:
            self._generator = generator
        else:
            self._generator = np.random.Generator(np.random.PCG64(seed))
        self.seed = seed

    @property
    def generator(self) -> np.random.Generator:
        return self._generator

    def random(self) -> float:
        """Uniform draw on [0, 1)."""
        return float(self._generator.random())

    def uniform(self, low: float, high: float) -> float:
        if low == high:
            return float(low)
        return float(self._generator.uniform(low, high))

    def integers(self, low: int, high: int) -> int:
        """Integer draw on [low, high)."""
        return int(self._generator.integers(low, high))

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.integers(0, len(items))]

    def weighted_choice(self, weights: Mapping[str, float]) -> str:
        """Pick a key by walking cumulative thresholds in insertion order."""
        keys = [key for key, weight in weights.items() if weight > 0]
        if not keys:
            raise ValueError("At least one weight must be positive")
        total = float(sum(weights[key] for key in keys))
        draw = self.random() * total
        cumulative = 0.0
        for key in keys:
            cumulative += float(weights[key])
            if draw < cumulative:
                return key
        return keys[-1]

    def spawn_seed(self) -> int:
        """Derive an integer seed for third-party code that takes its own seed."""
        return self.integers(0, 2**31 - 1)
