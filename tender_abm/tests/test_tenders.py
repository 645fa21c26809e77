from __future__ import annotations

import pytest

from tender_abm.config import TenderConfig
from tender_abm.models import Tender, TenderKind
from tender_abm.random_source import RandomSource
from tender_abm.tenders import TenderGenerator, estimate_tender_cost, tender_cost_ratio


def test_estimated_cost_for_reference_tender() -> None:
    assert estimate_tender_cost(100.0, 1.1) == 70.0
    assert tender_cost_ratio(0.7) == pytest.approx(0.60)


def test_generated_tenders_are_valid(config: TenderConfig, random_source: RandomSource) -> None:
    generator = TenderGenerator(config, random_source)
    tenders = [generator.generate() for _ in range(200)]
    assert [t.id for t in tenders] == list(range(1, 201))
    assert generator.active_tender is tenders[-1]
    for tender in tenders:
        assert tender.value > 0
        assert 0.55 <= tender.cost_ratio <= 0.85
        profile = config.TENDER_PROFILES[tender.kind.value]
        low, high = profile["complexity_range"]
        assert low <= tender.complexity_factor <= high
    assert {t.kind for t in tenders} == set(TenderKind)


def test_type_distribution_can_be_restricted(random_source: RandomSource) -> None:
    cfg = TenderConfig().copy_with_overrides({"TENDER_TYPE_PROBABILITIES": {"large": 1.0}})
    generator = TenderGenerator(cfg, random_source)
    for _ in range(50):
        tender = generator.generate()
        assert tender.kind is TenderKind.LARGE
        assert tender.value >= 100.0 * 1.2 * 0.7 - 0.01


def test_tender_rejects_non_positive_value() -> None:
    with pytest.raises(ValueError):
        Tender(id=1, kind=TenderKind.SMALL, value=0.0, complexity_factor=1.0, estimated_cost=0.0)
