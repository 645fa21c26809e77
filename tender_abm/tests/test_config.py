from __future__ import annotations

import json
import warnings
from pathlib import Path

import pytest

from tender_abm.config import (
    TenderConfig,
    apply_scenario_profile,
    get_scenario_profile,
    list_scenario_profiles,
    load_scenario_profile,
)


def test_default_weights_are_normalized_without_warning() -> None:
    cfg = TenderConfig()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        weights = cfg.normalized_meat_weights()
    assert sum(weights) == pytest.approx(1.0)
    assert weights == pytest.approx((0.5, 0.3, 0.2))


def test_unbalanced_weights_warn_and_renormalize() -> None:
    cfg = TenderConfig(WEIGHT_PRICE=1.0, WEIGHT_QUALITY=1.0, WEIGHT_EXPERIENCE=0.0)
    with pytest.warns(UserWarning, match="renormalizing"):
        weights = cfg.normalized_meat_weights()
    assert weights == pytest.approx((0.5, 0.5, 0.0))


def test_zero_weights_fall_back_to_unit_total() -> None:
    cfg = TenderConfig(WEIGHT_PRICE=0.0, WEIGHT_QUALITY=0.0, WEIGHT_EXPERIENCE=0.0)
    with pytest.warns(UserWarning):
        weights = cfg.normalized_meat_weights()
    assert weights == (0.0, 0.0, 0.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"N_PLAYERS": -1},
        {"N_ROUNDS": -5},
        {"MIN_QUALITY": 11.0},
        {"MIN_PROFIT_MARGIN": 0.5, "MAX_PROFIT_MARGIN": 0.4},
        {"MAX_PROFIT_MARGIN": 1.0},
    ],
)
def test_invalid_configuration_is_rejected(overrides) -> None:
    with pytest.raises(ValueError):
        TenderConfig(**overrides)


def test_copy_with_overrides_leaves_base_untouched() -> None:
    base = TenderConfig()
    updated = base.copy_with_overrides(
        {
            "N_PLAYERS": 20,
            "TENDER_PROFILES.small.complexity_range": [0.8, 0.9],
            "TENDER_TYPE_PROBABILITIES": {"large": 1.0},
        }
    )
    assert updated.N_PLAYERS == 20
    assert updated.TENDER_PROFILES["small"]["complexity_range"] == (0.8, 0.9)
    assert updated.TENDER_TYPE_PROBABILITIES == {"large": 1.0}
    assert base.N_PLAYERS == 10
    assert base.TENDER_PROFILES["small"]["complexity_range"] == (0.7, 1.0)
    assert set(base.TENDER_TYPE_PROBABILITIES) == {"small", "medium", "large"}


def test_tuple_overrides_keep_tuple_semantics() -> None:
    cfg = TenderConfig().copy_with_overrides({"EVALUATOR_EXPERTISE_RANGE": 1.0})
    assert cfg.EVALUATOR_EXPERTISE_RANGE == (1.0, 1.0)


def test_non_numeric_range_override_is_rejected() -> None:
    with pytest.raises(ValueError):
        TenderConfig().copy_with_overrides({"EVALUATOR_EXPERTISE_RANGE": "high"})
    with pytest.raises(ValueError):
        TenderConfig().copy_with_overrides({"TENDER_PROFILES.small.cost_ratio_range": None})


def test_nested_profile_override_merges_into_table() -> None:
    base = TenderConfig()
    cfg = base.copy_with_overrides({"TENDER_PROFILES": {"large": {"complexity_range": [1.1, 1.6]}}})
    assert cfg.TENDER_PROFILES["large"]["complexity_range"] == (1.1, 1.6)
    assert cfg.TENDER_PROFILES["large"]["cost_ratio_range"] == (0.55, 0.65)
    assert set(cfg.TENDER_PROFILES) == {"small", "medium", "large"}
    assert base.TENDER_PROFILES["large"]["complexity_range"] == (1.0, 1.5)


def test_unknown_override_raises_key_error() -> None:
    with pytest.raises(KeyError):
        TenderConfig().copy_with_overrides({"NOT_A_PARAMETER": 1})


def test_copy_with_overrides_revalidates() -> None:
    with pytest.raises(ValueError):
        TenderConfig().copy_with_overrides({"N_PLAYERS": -3})


def test_snapshot_is_json_serializable() -> None:
    payload = json.dumps(TenderConfig().snapshot())
    assert "WEIGHT_PRICE" in payload


def test_builtin_scenarios_are_registered() -> None:
    names = {profile.name for profile in list_scenario_profiles()}
    assert {"baseline", "price_only", "quality_focused", "high_social_learning", "isolated"} <= names


def test_scenario_lookup_is_case_insensitive() -> None:
    profile = get_scenario_profile("  Price_Only ")
    cfg = apply_scenario_profile(TenderConfig(), profile)
    assert cfg.meat_weights == (1.0, 0.0, 0.0)


def test_unknown_scenario_raises_key_error() -> None:
    with pytest.raises(KeyError):
        get_scenario_profile("does_not_exist")


def test_apply_none_profile_returns_config() -> None:
    cfg = TenderConfig()
    assert apply_scenario_profile(cfg, None) is cfg


def test_load_scenario_profile_from_json(tmp_path: Path) -> None:
    path = tmp_path / "crowded.json"
    path.write_text(
        json.dumps({"description": "Crowded market", "parameters": {"N_PLAYERS": 40}}),
        encoding="utf-8",
    )
    profile = load_scenario_profile(path)
    assert profile.name == "crowded"
    assert profile.description == "Crowded market"
    cfg = apply_scenario_profile(TenderConfig(), profile)
    assert cfg.N_PLAYERS == 40
    assert profile.to_metadata()["overrides"] == {"N_PLAYERS": 40}


def test_load_scenario_profile_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_scenario_profile(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_scenario_profile(bad)
    bad_overrides = tmp_path / "bad_overrides.json"
    bad_overrides.write_text(json.dumps({"overrides": [1]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_scenario_profile(bad_overrides)
