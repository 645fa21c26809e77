from __future__ import annotations

import pytest

from tender_abm import analysis
from tender_abm.config import TenderConfig
from tender_abm.models import Archetype
from tender_abm.simulation import TenderSimulation


@pytest.fixture
def played(config: TenderConfig) -> TenderSimulation:
    sim = TenderSimulation(config)
    sim.run_rounds(20)
    return sim


def test_round_statistics_frame(played: TenderSimulation) -> None:
    frame = analysis.round_statistics_frame(played)
    assert list(frame.columns) == analysis.ROUND_COLUMNS
    assert len(frame) == 20
    assert frame["round"].tolist() == list(range(1, 21))


def test_players_frame(played: TenderSimulation) -> None:
    frame = analysis.players_frame(played)
    assert len(frame) == 6
    assert {"player_id", "archetype", "bid", "win_rate", "target_profit_margin"} <= set(frame.columns)


def test_per_player_queries(played: TenderSimulation, config: TenderConfig) -> None:
    ids = {p.player_id for p in played.players}
    for query in (
        analysis.current_bids,
        analysis.ideal_bids,
        analysis.qualities,
        analysis.experience_levels,
        analysis.win_rates,
        analysis.cost_estimation_accuracy,
        analysis.learning_speeds,
        analysis.risk_premiums,
    ):
        assert set(query(played)) == ids

    shares = analysis.market_shares(played)
    assert sum(shares.values()) == pytest.approx(1.0)
    assert all(0.0 <= rate <= 1.0 for rate in analysis.win_rates(played).values())

    margins = analysis.profit_margins(played)
    for entry in margins.values():
        assert config.MIN_PROFIT_MARGIN <= entry["target"] <= config.MAX_PROFIT_MARGIN
        assert 0.0 <= entry["achieved"] <= 1.0


def test_archetype_distribution_lists_every_archetype(played: TenderSimulation) -> None:
    distribution = analysis.archetype_distribution(played)
    assert set(distribution) == {a.value for a in Archetype}
    assert sum(distribution.values()) == 6


def test_experience_performance_correlation_bounds(played: TenderSimulation) -> None:
    coefficient = analysis.experience_performance_correlation(played)
    assert -1.0 <= coefficient <= 1.0


def test_correlation_is_zero_when_undefined() -> None:
    sim = TenderSimulation(TenderConfig(N_PLAYERS=1, N_ROUNDS=3))
    sim.run()
    assert analysis.experience_performance_correlation(sim) == 0.0


def test_market_volatility() -> None:
    assert analysis.market_volatility([]) == 0.0
    assert analysis.market_volatility([3.0, 3.0, 3.0]) == 0.0
    assert analysis.market_volatility([2.0, 4.0]) == pytest.approx(1.0 / 3.0)


def test_summary_statistics_keys(played: TenderSimulation) -> None:
    summary = analysis.summary_statistics(played)
    assert summary["rounds_played"] == 20
    assert summary["players"] == 6
    assert summary["final_avg_bid"] > 0
    assert 0.0 < summary["final_hhi"] <= 1.0
    assert set(summary["archetype_distribution"]) == {a.value for a in Archetype}
    assert summary["min_avg_bid"] <= summary["mean_avg_bid"]


def test_winning_bids_query(played: TenderSimulation) -> None:
    bids = analysis.winning_bids(played)
    assert len(bids) == 20
    assert bids[-1] == played.last_outcome.winning_bid
    assert all(bid >= 1.0 for bid in bids)
    assert analysis.summary_statistics(played)["mean_winning_bid"] == pytest.approx(sum(bids) / len(bids))
