"""
Bidding agents and bid construction for Tender ABM.

This module implements the competing suppliers ("players") of the repeated
procurement market. Each player keeps its own capability, strategy, learning
and social state together with a set of bounded FIFO memories, and turns the
active tender into a submitted bid.

Key mechanisms implemented:

1. **Quality Offered**: A per-round effort draw raises quality above the
   player's base capability; tender complexity helps capable players and
   penalizes weaker ones.

2. **Cost Estimation**: Players estimate the cost of the work from a
   type-dependent cost ratio plus a complexity surcharge, perturbed by an
   error band that narrows as their estimation accuracy improves.

3. **Margin-Based Pricing**: The ideal bid is the price that exactly earns
   the player's (complexity- and archetype-adjusted) target profit margin.

4. **Strategic Adjustment**: The learned bid strategy, experience-dependent
   risk attitude, learned bid adjustment and a small jitter turn the ideal
   bid into the submitted one, capped by the player's awareness of the
   tender's value.
"""

from __future__ import annotations

import collections
from typing import Any, Deque, Dict, List, Set

import numpy as np

from .config import TenderConfig
from .models import Archetype, BidSnapshot, Observation, PartnerProfile, Tender, TenderKind
from .random_source import RandomSource
from .utils import safe_divide, safe_mean

MIN_BID = 1.0
BID_JITTER = 0.02
COST_ERROR_SCALE = 0.3
COMPLEXITY_SURCHARGE = 0.05


class BiddingAgent:
    """
    A supplier competing for tenders round after round.

    Attributes
    ----------
    player_id : int
        Stable identity in ``0..N-1``.
    experience : float
        Accumulated experience; grows faster for winners.
    base_quality : float
        Capability level within ``[MIN_QUALITY, MAX_QUALITY]``.
    bid_strategy : float
        Learned multiplier (in percent) applied to the ideal bid, kept in
        ``[MIN_BID_STRATEGY, MAX_BID_STRATEGY]``.
    archetype : Archetype
        Behavioural class selecting the strategy-update rule.
    target_profit_margin : float
        Margin the player prices for, kept within the global margin bounds.
    observed_strategies : Deque[Observation]
        FIFO window of peer observations.
    """

    def __init__(
        self,
        player_id: int,
        config: TenderConfig,
        archetype: Archetype,
        base_quality: float,
        experience: float,
        bid_strategy: float = 100.0,
        target_profit_margin: float = 0.15,
        cost_estimation_accuracy: float = 0.7,
        learning_curve_speed: float = 0.5,
        margin_adjustment_rate: float = 0.1,
        risk_premium: float = 0.03,
        margin_sensitivity: float = 1.0,
        social_influence: float = 0.5,
        market_knowledge: float = 0.3,
    ):
        self.player_id = player_id
        self.config = config
        self.archetype = Archetype(archetype)

        # Capability
        self.experience = max(0.0, float(experience))
        self.base_quality = float(np.clip(base_quality, config.MIN_QUALITY, config.MAX_QUALITY))

        # Per-round working state
        self.current_quality = self.base_quality
        self.bid = 0.0
        self.ideal_bid = 0.0
        self.cost_estimate = 0.0
        self.current_profit_margin = 0.0
        self.winner = False
        self.last_profitability = 0.0

        # Strategy
        self.bid_strategy = float(np.clip(bid_strategy, config.MIN_BID_STRATEGY, config.MAX_BID_STRATEGY))
        self.bid_adjustment = 0.0
        self.risk_attitude = 0.0
        self.refresh_risk_attitude()

        # Learning
        self.target_profit_margin = float(
            np.clip(target_profit_margin, config.MIN_PROFIT_MARGIN, config.MAX_PROFIT_MARGIN)
        )
        self.cost_estimation_accuracy = float(np.clip(cost_estimation_accuracy, 0.0, config.MAX_COST_ACCURACY))
        self.learning_curve_speed = float(np.clip(learning_curve_speed, 0.1, 1.0))
        self.margin_adjustment_rate = float(margin_adjustment_rate)
        self.risk_premium = float(risk_premium)
        self.margin_sensitivity = float(margin_sensitivity)

        # Social
        self.learning_partners: Set[int] = set()
        self.observed_strategies: Deque[Observation] = collections.deque(maxlen=config.OBSERVATION_LIMIT)
        self.social_influence = float(np.clip(social_influence, 0.0, 1.0))
        self.market_knowledge = float(np.clip(market_knowledge, 0.0, 1.0))
        self.strategy_confidence = 0.5
        self.strategy_imitation_cooldown = int(config.IMITATION_COOLDOWN_ROUNDS)
        self.imitation_count = 0

        # Bounded histories
        self.bid_history: Deque[float] = collections.deque(maxlen=config.BID_HISTORY_LIMIT)
        self.quality_history: Deque[float] = collections.deque(maxlen=config.QUALITY_HISTORY_LIMIT)
        self.cost_estimate_history: Deque[float] = collections.deque(maxlen=config.COST_ESTIMATE_HISTORY_LIMIT)
        self.recent_performance: Deque[bool] = collections.deque(maxlen=config.RECENT_PERFORMANCE_LIMIT)
        self.profit_history: Deque[float] = collections.deque(maxlen=config.PROFIT_HISTORY_LIMIT)
        self.intel_own_bids: Deque[float] = collections.deque(maxlen=config.INTELLIGENCE_LIMIT)
        self.intel_tender_values: Deque[float] = collections.deque(maxlen=config.INTELLIGENCE_LIMIT)
        self.intel_winning_bids: Deque[float] = collections.deque(maxlen=config.INTELLIGENCE_LIMIT)

        # Aggregates
        self.win_count = 0
        self.total_bids = 0
        self.market_share = 0.0
        self.market_position = 0.0
        self.overall_performance_metric = 0.0

    def __repr__(self) -> str:
        return (
            f"BiddingAgent(id={self.player_id}, archetype={self.archetype.value}, "
            f"bid={self.bid:.2f}, strategy={self.bid_strategy:.1f}, wins={self.win_count})"
        )

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def win_rate(self) -> float:
        return safe_divide(self.win_count, self.total_bids)

    @property
    def recent_win_rate(self) -> float:
        return safe_mean(self.recent_performance)

    @property
    def has_bid(self) -> bool:
        return self.bid > 0

    def snapshot(self) -> BidSnapshot:
        return BidSnapshot(
            player_id=self.player_id,
            bid=self.bid,
            quality=self.current_quality,
            experience=self.experience,
        )

    def public_profile(self) -> PartnerProfile:
        return PartnerProfile(
            player_id=self.player_id,
            bid_strategy=self.bid_strategy,
            performance=self.overall_performance_metric,
            archetype=self.archetype,
        )

    def refresh_risk_attitude(self) -> None:
        """Set risk attitude from the experience band."""
        if self.experience < self.config.LOW_EXPERIENCE_THRESHOLD:
            self.risk_attitude = float(self.config.RISK_PROPENSITY)
        elif self.experience < self.config.HIGH_EXPERIENCE_THRESHOLD:
            self.risk_attitude = float(self.config.MEDIUM_RISK_AVERSION)
        else:
            self.risk_attitude = float(self.config.HIGH_RISK_AVERSION)

    def refresh_performance_metric(self) -> float:
        profitability = float(np.clip(safe_mean(self.profit_history), 0.0, 1.0))
        position = min(self.market_position / 2.0, 1.0)
        self.overall_performance_metric = float(
            np.clip(0.5 * self.win_rate + 0.3 * profitability + 0.2 * position, 0.0, 1.0)
        )
        return self.overall_performance_metric

    # ------------------------------------------------------------------
    # Bid construction
    # ------------------------------------------------------------------
    def offer_quality(self, tender: Tender, random_source: RandomSource) -> float:
        """Quality offered for ``tender``; weaker players lose more to complexity."""
        cfg = self.config
        effort = random_source.random()
        complexity = tender.complexity_factor
        capability_gap = 1.0 - self.base_quality / cfg.MAX_QUALITY
        complexity_adjustment = complexity * 0.2 - capability_gap * complexity * 0.3
        quality = self.base_quality + effort * cfg.QUALITY_EFFORT_RANGE + complexity_adjustment
        self.current_quality = float(np.clip(quality, cfg.MIN_QUALITY, cfg.MAX_QUALITY))
        self.quality_history.append(self.current_quality)
        return self.current_quality

    def estimate_cost(self, tender: Tender, random_source: RandomSource) -> float:
        profile = self.config.TENDER_PROFILES[tender.kind.value]
        base_ratio = random_source.uniform(*profile["cost_ratio_range"])
        base_cost = tender.value * base_ratio + tender.complexity_factor * COMPLEXITY_SURCHARGE * tender.value
        error_band = (1.0 - self.cost_estimation_accuracy) * COST_ERROR_SCALE
        error_factor = 1.0 + random_source.uniform(-error_band, error_band)
        self.cost_estimate = max(0.0, base_cost * error_factor)
        self.cost_estimate_history.append(self.cost_estimate)
        return self.cost_estimate

    def adjusted_margin(self, tender: Tender) -> float:
        """Target margin after complexity discount and archetype risk premium."""
        cfg = self.config
        margin = self.target_profit_margin
        if tender.kind in (TenderKind.MEDIUM, TenderKind.LARGE):
            discount = cfg.COMPLEXITY_DISCOUNT
            margin -= discount
            margin -= (tender.complexity_factor - 1.0) * self.margin_sensitivity * discount
        if self.archetype is Archetype.AGGRESSIVE:
            margin += self.risk_premium
        elif self.archetype is Archetype.CONSERVATIVE:
            margin -= self.risk_premium
        return float(np.clip(margin, cfg.MIN_PROFIT_MARGIN, cfg.MAX_PROFIT_MARGIN))

    def _apply_risk_attitude(self, bid: float) -> float:
        # The two experience bands use distinct signed formulas.
        if self.experience < self.config.LOW_EXPERIENCE_THRESHOLD:
            return bid + bid * self.risk_attitude * 0.5 + self.experience / 20.0
        return bid - bid * self.risk_attitude * 0.5 + self.experience / 20.0

    def _cap_to_tender_value(self, bid: float, tender_value: float) -> float:
        if bid <= tender_value:
            return bid
        awareness = 0.5 + 0.5 * self.market_knowledge
        return tender_value + (bid - tender_value) * (1.0 - awareness)

    def prepare_bid(self, tender: Tender, random_source: RandomSource) -> float:
        """Build and record this round's bid for ``tender``."""
        self.winner = False
        self.offer_quality(tender, random_source)
        cost_estimate = self.estimate_cost(tender, random_source)

        margin = self.adjusted_margin(tender)
        self.ideal_bid = cost_estimate / (1.0 - margin)

        bid = self.ideal_bid * (self.bid_strategy / 100.0)
        bid = self._apply_risk_attitude(bid)
        bid *= 1.0 + self.bid_adjustment
        bid *= 1.0 + random_source.uniform(-BID_JITTER, BID_JITTER)
        bid = round(bid, 2)

        bid = self._cap_to_tender_value(bid, tender.value)
        self.bid = round(max(bid, MIN_BID), 2)

        self.current_profit_margin = float(
            np.clip(safe_divide(self.bid - cost_estimate, self.bid), 0.0, 1.0)
        )
        self.bid_history.append(self.bid)
        self.total_bids += 1
        return self.bid

    def record_award(self, won: bool) -> None:
        self.winner = won
        if won:
            self.win_count += 1

    def describe(self) -> Dict[str, Any]:
        """Flat per-player record for reporting."""
        return {
            "player_id": self.player_id,
            "archetype": self.archetype.value,
            "bid": self.bid,
            "ideal_bid": self.ideal_bid,
            "quality": self.current_quality,
            "base_quality": self.base_quality,
            "experience": self.experience,
            "bid_strategy": self.bid_strategy,
            "bid_adjustment": self.bid_adjustment,
            "risk_attitude": self.risk_attitude,
            "target_profit_margin": self.target_profit_margin,
            "current_profit_margin": self.current_profit_margin,
            "last_profitability": self.last_profitability,
            "cost_estimation_accuracy": self.cost_estimation_accuracy,
            "learning_curve_speed": self.learning_curve_speed,
            "risk_premium": self.risk_premium,
            "market_knowledge": self.market_knowledge,
            "strategy_confidence": self.strategy_confidence,
            "win_count": self.win_count,
            "total_bids": self.total_bids,
            "win_rate": self.win_rate,
            "market_share": self.market_share,
            "market_position": self.market_position,
            "performance": self.overall_performance_metric,
        }


def initialize_players(config: TenderConfig, random_source: RandomSource) -> List[BiddingAgent]:
    """Create ``N_PLAYERS`` agents with traits drawn from the configured ranges."""
    players: List[BiddingAgent] = []
    for player_id in range(config.N_PLAYERS):
        archetype = Archetype(random_source.weighted_choice(config.ARCHETYPE_WEIGHTS))
        profile = config.ARCHETYPE_PROFILES[archetype.value]
        players.append(
            BiddingAgent(
                player_id=player_id,
                config=config,
                archetype=archetype,
                base_quality=random_source.uniform(*config.QUALITY_BASE_RANGE),
                experience=random_source.uniform(*config.INITIAL_EXPERIENCE_RANGE),
                bid_strategy=random_source.uniform(*profile["bid_strategy_range"]),
                target_profit_margin=random_source.uniform(*config.INITIAL_MARGIN_RANGE),
                cost_estimation_accuracy=random_source.uniform(*config.INITIAL_COST_ACCURACY_RANGE),
                learning_curve_speed=random_source.uniform(*config.LEARNING_CURVE_SPEED_RANGE),
                margin_adjustment_rate=random_source.uniform(*config.MARGIN_ADJUSTMENT_RATE_RANGE),
                risk_premium=random_source.uniform(*config.RISK_PREMIUM_RANGE),
                margin_sensitivity=random_source.uniform(*config.MARGIN_SENSITIVITY_RANGE),
                social_influence=random_source.uniform(*profile["social_influence_range"]),
                market_knowledge=random_source.uniform(*config.INITIAL_MARKET_KNOWLEDGE_RANGE),
            )
        )
    return players
