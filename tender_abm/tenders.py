"""Tender stream for Tender ABM: one active procurement opportunity per round."""

from __future__ import annotations

from typing import Optional

from .config import TenderConfig
from .models import Tender, TenderKind
from .random_source import RandomSource

COST_RATIO_BASE = 0.60
COST_RATIO_COMPLEXITY_SLOPE = 0.25
COMPLEXITY_REFERENCE = 0.7


def tender_cost_ratio(complexity: float) -> float:
    """Share of tender value the buyer expects the work to cost."""
    return COST_RATIO_BASE + (complexity - COMPLEXITY_REFERENCE) * COST_RATIO_COMPLEXITY_SLOPE


def estimate_tender_cost(value: float, complexity: float) -> float:
    return round(value * tender_cost_ratio(complexity), 2)


class TenderGenerator:
    """
    Draws tenders from a categorical type distribution.

    The tender type fixes a value-multiplier range over ``BASE_TENDER_VALUE``
    and a complexity range; a further multiplicative jitter of
    ``±TENDER_VALUE_VARIANCE`` is applied to the value. Estimated cost follows
    from value and complexity, so it lands between roughly 55% and 85% of the
    value.
    """

    def __init__(self, config: TenderConfig, random_source: RandomSource):
        self.config = config
        self.random_source = random_source
        self.active_tender: Optional[Tender] = None
        self._next_id = 1

    def _draw_kind(self) -> TenderKind:
        probabilities = {
            kind.value: float(self.config.TENDER_TYPE_PROBABILITIES.get(kind.value, 0.0))
            for kind in TenderKind
        }
        return TenderKind(self.random_source.weighted_choice(probabilities))

    def generate(self) -> Tender:
        """Create the next tender and make it the single active one."""
        kind = self._draw_kind()
        profile = self.config.TENDER_PROFILES[kind.value]
        multiplier = self.random_source.uniform(*profile["value_multiplier_range"])
        complexity = self.random_source.uniform(*profile["complexity_range"])
        variance = float(self.config.TENDER_VALUE_VARIANCE)
        jitter = 1.0 + self.random_source.uniform(-variance, variance)
        value = round(self.config.BASE_TENDER_VALUE * multiplier * jitter, 2)
        value = max(value, 0.01)

        tender = Tender(
            id=self._next_id,
            kind=kind,
            value=value,
            complexity_factor=complexity,
            estimated_cost=estimate_tender_cost(value, complexity),
        )
        self._next_id += 1
        self.active_tender = tender
        return tender
