"""
Simulation configuration dataclass and scenario utilities for Tender ABM.

This module provides the configuration system for the repeated procurement
market, including every tunable parameter of the tender stream, the bidding
agents, the evaluator panel and the learning loop. The structure is designed
to support:

1. **Reproducibility**: Every simulation run can capture a complete
   configuration snapshot, enabling exact replication of results.

2. **Scenarios**: Built-in profiles bundle the evaluation weightings and
   social-learning intensities most often compared (pure price competition,
   quality-led evaluation, strong or absent peer learning).

3. **Sensitivity Analysis**: Override mechanisms (including dotted keys for
   nested dictionaries) support parameter sweeps without mutating the base
   configuration.

Usage
-----
Basic configuration:

    >>> config = TenderConfig()
    >>> config = config.copy_with_overrides({"N_PLAYERS": 20})

With a scenario profile:

    >>> from tender_abm.config import get_scenario_profile, apply_scenario_profile
    >>> profile = get_scenario_profile("price_only")
    >>> config = apply_scenario_profile(TenderConfig(), profile)
"""

from __future__ import annotations

import copy
import json
import os
import warnings
from dataclasses import asdict, dataclass, field
from numbers import Number
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

MEAT_WEIGHT_TOLERANCE = 0.01


@dataclass
class TenderConfig:
    """Configuration for the repeated tender market simulation."""

    # Population and run length
    N_PLAYERS: int = 10
    N_ROUNDS: int = 200
    N_EVALUATORS: int = 5
    RANDOM_SEED: Optional[int] = 42

    # Quality and experience
    MIN_QUALITY: float = 1.0
    MAX_QUALITY: float = 10.0
    QUALITY_BASE_RANGE: Tuple[float, float] = (3.0, 7.0)
    QUALITY_EFFORT_RANGE: float = 2.0
    INITIAL_EXPERIENCE_RANGE: Tuple[float, float] = (0.0, 10.0)
    LOW_EXPERIENCE_THRESHOLD: float = 5.0
    HIGH_EXPERIENCE_THRESHOLD: float = 15.0
    WINNER_EXPERIENCE_GAIN: float = 1.0
    LOSER_EXPERIENCE_GAIN: float = 0.2

    # Risk attitude by experience band (low / medium / high)
    RISK_PROPENSITY: float = 0.10
    MEDIUM_RISK_AVERSION: float = 0.05
    HIGH_RISK_AVERSION: float = 0.02

    # Profit margins
    MIN_PROFIT_MARGIN: float = 0.02
    MAX_PROFIT_MARGIN: float = 0.40
    INITIAL_MARGIN_RANGE: Tuple[float, float] = (0.10, 0.25)
    COMPLEXITY_DISCOUNT: float = 0.02
    MARGIN_ADJUSTMENT_RATE_RANGE: Tuple[float, float] = (0.05, 0.20)
    RISK_PREMIUM_RANGE: Tuple[float, float] = (0.01, 0.05)
    MARGIN_SENSITIVITY_RANGE: Tuple[float, float] = (0.5, 1.5)

    # Cost estimation
    INITIAL_COST_ACCURACY_RANGE: Tuple[float, float] = (0.5, 0.8)
    MAX_COST_ACCURACY: float = 0.95
    LEARNING_CURVE_SPEED_RANGE: Tuple[float, float] = (0.1, 1.0)

    # Tender stream
    BASE_TENDER_VALUE: float = 100.0
    TENDER_VALUE_VARIANCE: float = 0.30
    TENDER_TYPE_PROBABILITIES: Dict[str, float] = field(
        default_factory=lambda: {"small": 0.4, "medium": 0.4, "large": 0.2}
    )
    TENDER_PROFILES: Dict[str, Dict[str, Tuple[float, float]]] = field(
        default_factory=lambda: {
            "small": {
                "value_multiplier_range": (0.5, 1.0),
                "complexity_range": (0.7, 1.0),
                "cost_ratio_range": (0.75, 0.85),
            },
            "medium": {
                "value_multiplier_range": (0.8, 1.2),
                "complexity_range": (0.8, 1.2),
                "cost_ratio_range": (0.65, 0.75),
            },
            "large": {
                "value_multiplier_range": (1.2, 2.0),
                "complexity_range": (1.0, 1.5),
                "cost_ratio_range": (0.55, 0.65),
            },
        }
    )

    # MEAT evaluation (auto-renormalized to sum to 1)
    WEIGHT_PRICE: float = 0.5
    WEIGHT_QUALITY: float = 0.3
    WEIGHT_EXPERIENCE: float = 0.2
    MEAT_SCORE_SHARE: float = 0.6
    EVALUATOR_RATING_SHARE: float = 0.4

    # Evaluator panel
    EVALUATOR_EXTREME_PROBABILITY: float = 0.4
    EVALUATOR_EXPERTISE_RANGE: Tuple[float, float] = (0.4, 1.0)

    # Archetypes
    ARCHETYPE_WEIGHTS: Dict[str, float] = field(
        default_factory=lambda: {
            "aggressive": 0.25,
            "conservative": 0.25,
            "adaptive": 0.25,
            "follower": 0.25,
        }
    )
    ARCHETYPE_PROFILES: Dict[str, Dict[str, Tuple[float, float]]] = field(
        default_factory=lambda: {
            "aggressive": {"bid_strategy_range": (80.0, 95.0), "social_influence_range": (0.1, 0.4)},
            "conservative": {"bid_strategy_range": (100.0, 115.0), "social_influence_range": (0.1, 0.4)},
            "adaptive": {"bid_strategy_range": (90.0, 110.0), "social_influence_range": (0.3, 0.6)},
            "follower": {"bid_strategy_range": (90.0, 110.0), "social_influence_range": (0.6, 0.9)},
        }
    )
    MIN_BID_STRATEGY: float = 10.0
    MAX_BID_STRATEGY: float = 200.0
    WINNER_STRATEGY_FLOOR: float = 20.0
    INITIAL_MARKET_KNOWLEDGE_RANGE: Tuple[float, float] = (0.1, 0.4)

    # Social learning
    USE_SOCIAL_NETWORK: bool = True
    NETWORK_N_NEIGHBORS: int = 4
    NETWORK_REWIRING_PROB: float = 0.1
    SOCIAL_LEARNING_RATE: float = 0.3
    IMITATION_THRESHOLD: float = 0.05
    IMITATION_COOLDOWN_ROUNDS: int = 3
    MARKET_INTELLIGENCE_LEVEL: float = 0.5
    STRATEGY_ADAPTATION_RATE: float = 0.1
    VOLATILITY_THRESHOLD: float = 0.3
    LOW_WIN_RATE_THRESHOLD: float = 0.2

    # Bounded memories (FIFO windows)
    BID_HISTORY_LIMIT: int = 50
    QUALITY_HISTORY_LIMIT: int = 50
    COST_ESTIMATE_HISTORY_LIMIT: int = 10
    RECENT_PERFORMANCE_LIMIT: int = 5
    PROFIT_HISTORY_LIMIT: int = 10
    OBSERVATION_LIMIT: int = 10
    INTELLIGENCE_LIMIT: int = 10
    ROUND_HISTORY_LIMIT: int = 500
    VOLATILITY_WINDOW: int = 10

    verbose: bool = False
    enable_round_logging: bool = True
    round_log_interval: int = 10

    def __post_init__(self) -> None:
        if self.N_PLAYERS < 0:
            raise ValueError(f"N_PLAYERS must be non-negative, got {self.N_PLAYERS}")
        if self.N_ROUNDS < 0:
            raise ValueError(f"N_ROUNDS must be non-negative, got {self.N_ROUNDS}")
        if self.MIN_QUALITY > self.MAX_QUALITY:
            raise ValueError("MIN_QUALITY must not exceed MAX_QUALITY")
        if not 0.0 <= self.MIN_PROFIT_MARGIN <= self.MAX_PROFIT_MARGIN < 1.0:
            raise ValueError("Profit margin bounds must satisfy 0 <= MIN <= MAX < 1")

    @property
    def meat_weights(self) -> Tuple[float, float, float]:
        return (float(self.WEIGHT_PRICE), float(self.WEIGHT_QUALITY), float(self.WEIGHT_EXPERIENCE))

    def normalized_meat_weights(self, warn: bool = True) -> Tuple[float, float, float]:
        """Return MEAT weights rescaled to sum to one.

        A warning is emitted when the configured weights deviate from one by
        more than ``MEAT_WEIGHT_TOLERANCE``; a non-positive sum is treated as 1.
        """
        weights = self.meat_weights
        total = sum(weights)
        if warn and abs(total - 1.0) > MEAT_WEIGHT_TOLERANCE:
            warnings.warn(
                f"MEAT weights sum to {total:.3f}; renormalizing "
                f"(price={weights[0]}, quality={weights[1]}, experience={weights[2]})",
                UserWarning,
                stacklevel=2,
            )
        if total <= 0:
            total = 1.0
        return tuple(w / total for w in weights)  # type: ignore[return-value]

    def snapshot(self) -> Dict[str, Any]:
        """Return a deep-copied, JSON-safe representation of the configuration."""
        return asdict(self)

    def copy_with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "TenderConfig":
        """Return a new config with the provided overrides merged in."""
        new_cfg = copy.deepcopy(self)
        if overrides:
            _apply_overrides(new_cfg, overrides)
        new_cfg.__post_init__()
        return new_cfg


PROBABILITY_TABLES = frozenset({"TENDER_TYPE_PROBABILITIES", "ARCHETYPE_WEIGHTS"})


def _apply_overrides(config: TenderConfig, overrides: Dict[str, Any]) -> None:
    """Merge ``overrides`` into ``config`` in place.

    Keys are attribute names or dotted paths into the profile tables
    (``"TENDER_PROFILES.large.complexity_range"``). Probability tables are
    replaced wholesale so a scenario can drop a tender type or an archetype.
    """
    for key, value in overrides.items():
        attr, _, path = key.partition(".")
        if not hasattr(config, attr):
            raise KeyError(f"Unknown configuration attribute '{attr}' in override.")
        current = getattr(config, attr)
        if path:
            _set_table_entry(attr, current, path.split("."), value)
        elif attr in PROBABILITY_TABLES:
            setattr(config, attr, copy.deepcopy(value))
        elif isinstance(current, dict) and isinstance(value, dict):
            setattr(config, attr, _merge_tables(current, value))
        else:
            setattr(config, attr, _match_shape(value, current))


def _set_table_entry(attr: str, table: Any, path: List[str], value: Any) -> None:
    if not isinstance(table, dict):
        raise KeyError(f"Attribute '{attr}' is not a table; cannot set '{attr}.{'.'.join(path)}'.")
    node = table
    for part in path[:-1]:
        node = node.setdefault(part, {})
        if not isinstance(node, dict):
            raise KeyError(f"'{part}' in '{attr}.{'.'.join(path)}' is not a table.")
    node[path[-1]] = _match_shape(value, node.get(path[-1]))


def _merge_tables(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Nested merge of profile tables; ``base`` is left untouched."""
    merged = copy.deepcopy(base)
    for key, value in updates.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = _merge_tables(existing, value)
        else:
            merged[key] = _match_shape(value, existing)
    return merged


def _match_shape(value: Any, current: Any) -> Any:
    """Keep ``(low, high)`` range parameters as tuples; a scalar pins both ends."""
    if not isinstance(current, tuple):
        return copy.deepcopy(value)
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if isinstance(value, Number):
        return (value,) * len(current)
    raise ValueError(f"Cannot use {value!r} as a range; expected a list, tuple or number.")


@dataclass(frozen=True)
class ScenarioProfile:
    """Reusable parameter bundle describing one market scenario."""

    name: str
    description: str
    overrides: Dict[str, Any] = field(default_factory=dict)
    source: str = "built-in"

    def to_metadata(self) -> Dict[str, Any]:
        """Return a serializable summary for run artefacts."""
        return {
            "name": self.name,
            "description": self.description,
            "source": self.source,
            "overrides": copy.deepcopy(self.overrides),
        }


def apply_scenario_profile(config: TenderConfig, profile: Optional[ScenarioProfile]) -> TenderConfig:
    """Return a config with the scenario overrides applied."""
    if profile is None:
        return config
    return config.copy_with_overrides(profile.overrides)


def list_scenario_profiles() -> List[ScenarioProfile]:
    """Return the available built-in scenario profiles."""
    return list(SCENARIO_LIBRARY.values())


def get_scenario_profile(name: str) -> ScenarioProfile:
    """Fetch a built-in scenario profile by name (case-insensitive)."""
    normalized = name.strip().lower()
    for profile in SCENARIO_LIBRARY.values():
        if profile.name.lower() == normalized:
            return profile
    raise KeyError(f"Unknown scenario profile '{name}'. Available: {', '.join(SCENARIO_LIBRARY.keys())}")


def load_scenario_profile(path: str | os.PathLike[str]) -> ScenarioProfile:
    """Load a scenario profile definition from a JSON file."""
    file_path = Path(path).expanduser().resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {file_path}")
    with file_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Scenario file {file_path} must contain a JSON object.")
    overrides = payload.get("overrides") or payload.get("parameters") or {}
    if not isinstance(overrides, dict):
        raise ValueError(f"Scenario file {file_path} must define an 'overrides' dictionary.")
    return ScenarioProfile(
        name=payload.get("name") or file_path.stem,
        description=payload.get("description", f"Custom scenario loaded from {file_path.name}"),
        overrides=overrides,
        source=payload.get("source", str(file_path)),
    )


SCENARIO_LIBRARY: Dict[str, ScenarioProfile] = {
    "baseline": ScenarioProfile(
        name="baseline",
        description="Default MEAT weighting (0.5/0.3/0.2) with moderate social learning.",
        overrides={},
    ),
    "price_only": ScenarioProfile(
        name="price_only",
        description=(
            "Lowest-price award: quality and experience carry no weight and the "
            "evaluator panel rates without noise, so the lowest bid wins every "
            "round. The strongest setting for a race to the bottom in target margins."
        ),
        overrides={
            "WEIGHT_PRICE": 1.0,
            "WEIGHT_QUALITY": 0.0,
            "WEIGHT_EXPERIENCE": 0.0,
            "EVALUATOR_EXPERTISE_RANGE": (1.0, 1.0),
        },
    ),
    "quality_focused": ScenarioProfile(
        name="quality_focused",
        description="Quality-led evaluation that rewards capability over price cuts.",
        overrides={"WEIGHT_PRICE": 0.3, "WEIGHT_QUALITY": 0.5, "WEIGHT_EXPERIENCE": 0.2},
    ),
    "high_social_learning": ScenarioProfile(
        name="high_social_learning",
        description="Dense peer observation with fast imitation of successful strategies.",
        overrides={
            "SOCIAL_LEARNING_RATE": 0.6,
            "IMITATION_THRESHOLD": 0.02,
            "MARKET_INTELLIGENCE_LEVEL": 0.9,
            "NETWORK_N_NEIGHBORS": 6,
        },
    ),
    "isolated": ScenarioProfile(
        name="isolated",
        description="No learning partners: players adapt from their own outcomes only.",
        overrides={"USE_SOCIAL_NETWORK": False, "SOCIAL_LEARNING_RATE": 0.0},
    ),
}
