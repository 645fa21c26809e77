"""Numeric helpers shared across Tender ABM."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

import numpy as np


def safe_mean(data: Any, default: float = 0.0) -> float:
    """Compute the mean, returning ``default`` for empty collections."""
    arr = np.asarray(list(data) if not isinstance(data, np.ndarray) else data, dtype=float)
    if arr.size == 0:
        return default
    with np.errstate(invalid="ignore"):
        return float(arr.mean())


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, falling back to ``default`` when the denominator is zero."""
    if denominator == 0:
        return default
    return float(numerator) / float(denominator)


def clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


def herfindahl_index(shares: Iterable[float]) -> float:
    """Sum of squared market shares (0 for an empty market)."""
    return float(sum(float(share) ** 2 for share in shares))


def variance_to_mean(values: Sequence[float]) -> float:
    """Index of dispersion of ``values``; 0 when undefined."""
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return 0.0
    mean = float(arr.mean())
    if mean <= 0:
        return 0.0
    return float(arr.var() / mean)
