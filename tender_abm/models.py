"""
Core dataclasses used across the Tender ABM simulation.

This module defines the entities exchanged between the stages of a round:
the active tender, the frozen bid snapshot every evaluation step reads, the
peer observations players collect, and the round-level statistics record.

Key Concepts
------------
- **Tender**: one procurement opportunity per round. Immutable once drawn so
  every player bids against the same snapshot.

- **BidSnapshot**: the public part of a submitted bid (price, quality offered,
  experience) frozen after all players have bid. Scoring and winner
  determination read only these.

- **MarketSnapshot**: settled post-award market state (win rates, market
  shares, partner profiles, volatility) used by the learning stage so no
  player learns from a partially-updated market.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np


class TenderKind(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Archetype(str, Enum):
    """Fixed behavioural class governing a player's strategy-update rule."""

    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"
    ADAPTIVE = "adaptive"
    FOLLOWER = "follower"


class EvaluatorAttitude(str, Enum):
    EXTREME = "extreme"
    MEDIUM = "medium"


class RoundPhase(str, Enum):
    """States of the per-round state machine, in execution order."""

    IDLE = "idle"
    GENERATE_TENDER = "generate_tender"
    COLLECT_BIDS = "collect_bids"
    EVALUATE = "evaluate"
    LEARN = "learn"
    RECORD_STATS = "record_stats"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class Tender:
    """A single procurement opportunity."""

    id: int
    kind: TenderKind
    value: float
    complexity_factor: float
    estimated_cost: float

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Tender value must be positive, got {self.value}")
        if self.complexity_factor < 0 or self.estimated_cost < 0:
            raise ValueError("Tender complexity and estimated cost must be non-negative")

    @property
    def cost_ratio(self) -> float:
        return self.estimated_cost / self.value


@dataclass(frozen=True, slots=True)
class Observation:
    """What a player saw of one learning partner in one round."""

    partner_id: int
    strategy: float
    performance: float
    archetype: Archetype
    round_seen: int


@dataclass(frozen=True, slots=True)
class BidSnapshot:
    """Public, frozen view of one submitted bid."""

    player_id: int
    bid: float
    quality: float
    experience: float


@dataclass(frozen=True, slots=True)
class PartnerProfile:
    """Previous-round public data of a player, as seen by its partners."""

    player_id: int
    bid_strategy: float
    performance: float
    archetype: Archetype


@dataclass(frozen=True)
class MarketSnapshot:
    """Settled market state after the award, read by every learner."""

    round_number: int
    tender: Tender
    winner_id: Optional[int]
    winning_bid: Optional[float]
    win_rates: Dict[int, float]
    market_shares: Dict[int, float]
    average_win_rate: float
    volatility: float
    profiles: Dict[int, PartnerProfile]


@dataclass
class RoundOutcome:
    """Evaluation results for one round; ``winner_id`` is None without bidders."""

    round_number: int
    tender: Tender
    bids: Tuple[BidSnapshot, ...] = ()
    meat_scores: np.ndarray = field(default_factory=lambda: np.zeros(0))
    evaluator_ratings: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    mean_ratings: np.ndarray = field(default_factory=lambda: np.zeros(0))
    final_scores: np.ndarray = field(default_factory=lambda: np.zeros(0))
    winner_id: Optional[int] = None
    random_tie_break: bool = False

    @property
    def winning_bid(self) -> Optional[float]:
        if self.winner_id is None:
            return None
        for snapshot in self.bids:
            if snapshot.player_id == self.winner_id:
                return snapshot.bid
        return None


@dataclass(frozen=True, slots=True)
class RoundRecord:
    """Round-level statistics appended to the capped time series."""

    round: int
    avg_bid: float
    min_bid: float
    max_bid: float
    spread: float
    avg_quality: float
    winner_experience: float
    hhi: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "round": self.round,
            "avg_bid": self.avg_bid,
            "min_bid": self.min_bid,
            "max_bid": self.max_bid,
            "spread": self.spread,
            "avg_quality": self.avg_quality,
            "winner_experience": self.winner_experience,
            "hhi": self.hhi,
        }
