"""
Read-only reporting queries over a Tender ABM simulation.

Every function here is a pure function of the simulation's current state:
nothing is mutated, so plots, monitors and exporters can call them at any
point between rounds.
"""

from __future__ import annotations

import collections
from typing import TYPE_CHECKING, Any, Dict, List, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .models import Archetype
from .utils import safe_divide, safe_mean, variance_to_mean

if TYPE_CHECKING:  # pragma: no cover
    from .simulation import TenderSimulation

ROUND_COLUMNS = [
    "round",
    "avg_bid",
    "min_bid",
    "max_bid",
    "spread",
    "avg_quality",
    "winner_experience",
    "hhi",
]


def current_bids(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.bid for p in sim.players}


def ideal_bids(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.ideal_bid for p in sim.players}


def qualities(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.current_quality for p in sim.players}


def experience_levels(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.experience for p in sim.players}


def win_rates(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.win_rate for p in sim.players}


def market_shares(sim: "TenderSimulation") -> Dict[int, float]:
    total_wins = sum(p.win_count for p in sim.players)
    return {p.player_id: safe_divide(p.win_count, total_wins) for p in sim.players}


def archetype_distribution(sim: "TenderSimulation") -> Dict[str, int]:
    counts = collections.Counter(p.archetype.value for p in sim.players)
    return {archetype.value: counts.get(archetype.value, 0) for archetype in Archetype}


def profit_margins(sim: "TenderSimulation") -> Dict[int, Dict[str, float]]:
    """Target versus achieved margin per player."""
    return {
        p.player_id: {"target": p.target_profit_margin, "achieved": p.current_profit_margin}
        for p in sim.players
    }


def cost_estimation_accuracy(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.cost_estimation_accuracy for p in sim.players}


def learning_speeds(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.learning_curve_speed for p in sim.players}


def risk_premiums(sim: "TenderSimulation") -> Dict[int, float]:
    return {p.player_id: p.risk_premium for p in sim.players}


def experience_performance_correlation(sim: "TenderSimulation") -> float:
    """Pearson correlation between experience and overall performance.

    Returns 0.0 when it is undefined (fewer than two players or a constant series).
    """
    experience = np.array([p.experience for p in sim.players], dtype=float)
    performance = np.array([p.overall_performance_metric for p in sim.players], dtype=float)
    if experience.size < 2 or np.ptp(experience) == 0 or np.ptp(performance) == 0:
        return 0.0
    result = stats.pearsonr(experience, performance)
    coefficient = float(result[0])
    if not np.isfinite(coefficient):
        return 0.0
    return coefficient


def winning_bids(sim: "TenderSimulation") -> List[float]:
    """Winning bid of each awarded round, oldest first, bounded like the round history."""
    return sim.winning_bids


def market_volatility(spreads: Sequence[float]) -> float:
    """Variance-to-mean ratio of bid spreads."""
    return variance_to_mean(list(spreads))


def round_statistics_frame(sim: "TenderSimulation") -> pd.DataFrame:
    records = [record.to_dict() for record in sim.round_history]
    return pd.DataFrame(records, columns=ROUND_COLUMNS)


def players_frame(sim: "TenderSimulation") -> pd.DataFrame:
    return pd.DataFrame([p.describe() for p in sim.players])


def win_rate_by_archetype(sim: "TenderSimulation") -> Dict[str, float]:
    grouped: Dict[str, List[float]] = collections.defaultdict(list)
    for player in sim.players:
        grouped[player.archetype.value].append(player.win_rate)
    return {archetype: safe_mean(rates) for archetype, rates in sorted(grouped.items())}


def summary_statistics(sim: "TenderSimulation") -> Dict[str, Any]:
    """Run-level summary emitted after ``run_rounds``."""
    frame = round_statistics_frame(sim)
    bidding = frame[frame["avg_bid"] > 0] if not frame.empty else frame
    first_avg = float(bidding["avg_bid"].iloc[0]) if not bidding.empty else 0.0
    final_avg = float(bidding["avg_bid"].iloc[-1]) if not bidding.empty else 0.0
    return {
        "rounds_played": int(sim.round_number),
        "players": len(sim.players),
        "mean_avg_bid": float(bidding["avg_bid"].mean()) if not bidding.empty else 0.0,
        "min_avg_bid": float(bidding["avg_bid"].min()) if not bidding.empty else 0.0,
        "final_avg_bid": final_avg,
        "bid_decline_pct": safe_divide(first_avg - final_avg, first_avg) * 100.0,
        "mean_quality": float(bidding["avg_quality"].mean()) if not bidding.empty else 0.0,
        "mean_winning_bid": safe_mean(winning_bids(sim)),
        "final_hhi": float(frame["hhi"].iloc[-1]) if not frame.empty else 0.0,
        "volatility": market_volatility(frame["spread"].tolist()[-sim.config.VOLATILITY_WINDOW:]),
        "mean_target_margin": safe_mean(p.target_profit_margin for p in sim.players),
        "mean_cost_accuracy": safe_mean(p.cost_estimation_accuracy for p in sim.players),
        "experience_performance_correlation": experience_performance_correlation(sim),
        "archetype_distribution": archetype_distribution(sim),
        "win_rate_by_archetype": win_rate_by_archetype(sim),
    }
