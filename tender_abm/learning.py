"""
Social learning and adaptation for Tender ABM.

After every award each player runs the same ordered update:

1. observe learning partners (previous-round public data)
2. blend market knowledge and bid strategy toward what was observed
3. consider imitating the best-performing partner
4. apply its archetype's strategy rule
5. book experience and strategy changes from the round outcome
6. recalibrate the bid adjustment against winning bids
7. refresh risk attitude
8. update market position
9. adapt the target profit margin (winners only)
10. improve cost-estimation accuracy
11. record market intelligence

Players only read the frozen ``MarketSnapshot``, so the order in which
players are updated does not change the result.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .agents import BiddingAgent
from .config import TenderConfig
from .models import Archetype, MarketSnapshot, Observation
from .random_source import RandomSource
from .utils import clamp, safe_divide, safe_mean

MAX_MARKET_POSITION = 2.0
MAX_BID_ADJUSTMENT = 0.2
PERFORMANCE_TREND_LIMIT = 0.5
IMITATION_CONFIDENCE_DECAY = 0.9
WIN_CONFIDENCE_GAIN = 0.02
AGGRESSIVE_LOSS_SHRINK = 0.995
CONSERVATIVE_VOLATILITY_SHRINK = 0.98
WINNER_STRATEGY_DECAY = 0.995
LOSER_STRATEGY_DECAY = 0.99
ARCHETYPE_MARGIN_FACTORS = {
    Archetype.AGGRESSIVE: 1.0,
    Archetype.CONSERVATIVE: 0.5,
    Archetype.ADAPTIVE: 1.5,
    Archetype.FOLLOWER: 1.0,
}


class SocialLearningEngine:
    """Applies the post-award learning update to one player at a time."""

    def __init__(self, config: TenderConfig, random_source: RandomSource):
        self.config = config
        self.random_source = random_source

    def _clamp_strategy(self, agent: BiddingAgent) -> None:
        agent.bid_strategy = clamp(agent.bid_strategy, self.config.MIN_BID_STRATEGY, self.config.MAX_BID_STRATEGY)

    def update(self, agent: BiddingAgent, market: MarketSnapshot) -> None:
        won = market.winner_id == agent.player_id
        self.observe_partners(agent, market)
        self.update_market_knowledge(agent)
        self.consider_imitation(agent)
        self.apply_archetype_rule(agent, won, market.volatility)
        self.apply_outcome(agent, won)
        self.update_bid_adjustment(agent)
        agent.refresh_risk_attitude()
        self.update_market_position(agent, market)
        self.adapt_profit_margin(agent, market, won)
        self.improve_cost_estimation(agent)
        self.record_intelligence(agent, market)

    # 1
    def observe_partners(self, agent: BiddingAgent, market: MarketSnapshot) -> None:
        for partner_id in sorted(agent.learning_partners):
            profile = market.profiles.get(partner_id)
            if profile is None:
                continue
            agent.observed_strategies.append(
                Observation(
                    partner_id=partner_id,
                    strategy=profile.bid_strategy,
                    performance=profile.performance,
                    archetype=profile.archetype,
                    round_seen=market.round_number,
                )
            )

    # 2
    def update_market_knowledge(self, agent: BiddingAgent) -> None:
        if not agent.observed_strategies:
            return
        rate = self.config.MARKET_INTELLIGENCE_LEVEL * self.config.STRATEGY_ADAPTATION_RATE
        mean_performance = safe_mean(obs.performance for obs in agent.observed_strategies)
        mean_strategy = safe_mean(obs.strategy for obs in agent.observed_strategies)
        agent.market_knowledge = clamp(
            agent.market_knowledge + rate * (mean_performance - agent.market_knowledge), 0.0, 1.0
        )
        agent.bid_strategy += rate * (mean_strategy - agent.bid_strategy)
        self._clamp_strategy(agent)

    # 3
    def consider_imitation(self, agent: BiddingAgent) -> bool:
        agent.strategy_imitation_cooldown += 1
        if not agent.observed_strategies:
            return False
        best: Observation = max(agent.observed_strategies, key=lambda obs: obs.performance)
        performance_gap = best.performance - agent.overall_performance_metric
        if agent.social_influence * performance_gap <= self.config.IMITATION_THRESHOLD:
            return False
        if agent.strategy_imitation_cooldown < self.config.IMITATION_COOLDOWN_ROUNDS:
            return False
        if self.random_source.random() >= agent.social_influence:
            return False
        fraction = agent.social_influence * self.config.SOCIAL_LEARNING_RATE
        agent.bid_strategy += (best.strategy - agent.bid_strategy) * fraction
        agent.strategy_confidence *= IMITATION_CONFIDENCE_DECAY
        agent.strategy_imitation_cooldown = 0
        agent.imitation_count += 1
        self._clamp_strategy(agent)
        return True

    # 4
    def performance_trend(self, agent: BiddingAgent) -> float:
        """Recent win rate relative to the long-run win rate."""
        if not agent.recent_performance:
            return 0.0
        trend = agent.recent_win_rate - agent.win_rate
        return float(np.clip(trend, -PERFORMANCE_TREND_LIMIT, PERFORMANCE_TREND_LIMIT))

    def apply_archetype_rule(self, agent: BiddingAgent, won: bool, volatility: float) -> None:
        archetype = agent.archetype
        if archetype is Archetype.AGGRESSIVE:
            if not won:
                agent.bid_strategy *= AGGRESSIVE_LOSS_SHRINK
        elif archetype is Archetype.CONSERVATIVE:
            if volatility > self.config.VOLATILITY_THRESHOLD:
                agent.bid_strategy *= CONSERVATIVE_VOLATILITY_SHRINK
        elif archetype is Archetype.ADAPTIVE:
            agent.bid_strategy *= 1.0 + self.performance_trend(agent) * self.config.STRATEGY_ADAPTATION_RATE
        elif archetype is Archetype.FOLLOWER:
            if agent.observed_strategies:
                target = safe_mean(obs.strategy for obs in agent.observed_strategies)
                agent.bid_strategy += (target - agent.bid_strategy) * agent.social_influence
        else:  # pragma: no cover - Archetype is closed
            raise ValueError(f"Unhandled archetype {archetype!r}")
        self._clamp_strategy(agent)

    # 5
    def apply_outcome(self, agent: BiddingAgent, won: bool) -> None:
        cfg = self.config
        agent.recent_performance.append(won)
        if won:
            agent.experience += cfg.WINNER_EXPERIENCE_GAIN
            agent.bid_strategy = max(cfg.WINNER_STRATEGY_FLOOR, agent.bid_strategy * WINNER_STRATEGY_DECAY)
            agent.last_profitability = agent.current_profit_margin
            agent.strategy_confidence = min(1.0, agent.strategy_confidence + WIN_CONFIDENCE_GAIN)
        else:
            agent.experience += cfg.LOSER_EXPERIENCE_GAIN
            if agent.recent_win_rate < cfg.LOW_WIN_RATE_THRESHOLD:
                agent.bid_strategy *= LOSER_STRATEGY_DECAY
        self._clamp_strategy(agent)

    # 6
    def update_bid_adjustment(self, agent: BiddingAgent) -> None:
        overlap = min(len(agent.intel_own_bids), len(agent.intel_winning_bids))
        if overlap == 0:
            return
        own = list(agent.intel_own_bids)[-overlap:]
        winning = list(agent.intel_winning_bids)[-overlap:]
        ratios = [safe_divide(mine, theirs) for mine, theirs in zip(own, winning) if theirs > 0]
        if not ratios:
            return
        mean_ratio = safe_mean(ratios)
        agent.bid_adjustment = float(
            np.clip((1.0 - mean_ratio) * 0.5, -MAX_BID_ADJUSTMENT, MAX_BID_ADJUSTMENT)
        )

    # 8
    def update_market_position(self, agent: BiddingAgent, market: MarketSnapshot) -> None:
        own_rate = market.win_rates.get(agent.player_id, 0.0)
        agent.market_share = market.market_shares.get(agent.player_id, 0.0)
        agent.market_position = min(
            MAX_MARKET_POSITION, safe_divide(own_rate, market.average_win_rate)
        )

    # 9
    def adapt_profit_margin(self, agent: BiddingAgent, market: MarketSnapshot, won: bool) -> Optional[float]:
        if not won:
            return None
        cfg = self.config
        actual_margin = safe_divide(agent.bid - market.tender.estimated_cost, agent.bid)
        agent.profit_history.append(actual_margin)
        gap = safe_mean(agent.profit_history) - agent.target_profit_margin
        step = gap * agent.margin_adjustment_rate * agent.learning_curve_speed
        step *= ARCHETYPE_MARGIN_FACTORS[agent.archetype]
        agent.target_profit_margin = float(
            np.clip(agent.target_profit_margin + step, cfg.MIN_PROFIT_MARGIN, cfg.MAX_PROFIT_MARGIN)
        )
        return actual_margin

    # 10
    def improve_cost_estimation(self, agent: BiddingAgent) -> None:
        agent.cost_estimation_accuracy = min(
            self.config.MAX_COST_ACCURACY,
            agent.cost_estimation_accuracy + agent.learning_curve_speed * 0.01,
        )

    # 11
    def record_intelligence(self, agent: BiddingAgent, market: MarketSnapshot) -> None:
        agent.intel_own_bids.append(agent.bid)
        agent.intel_tender_values.append(market.tender.value)
        if market.winning_bid is not None:
            agent.intel_winning_bids.append(market.winning_bid)
