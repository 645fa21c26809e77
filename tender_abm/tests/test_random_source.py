from __future__ import annotations

import pytest

from tender_abm.random_source import RandomSource


def test_same_seed_reproduces_draws() -> None:
    first = RandomSource(99)
    second = RandomSource(99)
    assert [first.random() for _ in range(5)] == [second.random() for _ in range(5)]
    assert first.uniform(2.0, 3.0) == second.uniform(2.0, 3.0)


def test_degenerate_uniform_consumes_nothing() -> None:
    rs = RandomSource(5)
    reference = RandomSource(5)
    assert rs.uniform(4.0, 4.0) == 4.0
    assert rs.random() == reference.random()


def test_weighted_choice_skips_non_positive_weights() -> None:
    rs = RandomSource(1)
    picks = {rs.weighted_choice({"small": 0.0, "medium": 1.0, "large": -2.0}) for _ in range(50)}
    assert picks == {"medium"}


def test_weighted_choice_requires_a_positive_weight() -> None:
    with pytest.raises(ValueError):
        RandomSource(1).weighted_choice({"small": 0.0})


def test_choice_rejects_empty_sequences() -> None:
    with pytest.raises(ValueError):
        RandomSource(1).choice([])


def test_spawn_seed_range() -> None:
    rs = RandomSource(3)
    seeds = [rs.spawn_seed() for _ in range(20)]
    assert all(0 <= seed < 2**31 - 1 for seed in seeds)
