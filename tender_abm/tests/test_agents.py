from __future__ import annotations

import pytest

from tender_abm import agents as agents_module
from tender_abm.agents import BiddingAgent, initialize_players
from tender_abm.config import TenderConfig
from tender_abm.models import Archetype, Tender, TenderKind
from tender_abm.random_source import RandomSource


@pytest.fixture
def exact_config() -> TenderConfig:
    """Configuration with every cost-side draw pinned."""
    return TenderConfig().copy_with_overrides(
        {
            "MAX_COST_ACCURACY": 1.0,
            "TENDER_PROFILES.small.cost_ratio_range": (0.7, 0.7),
        }
    )


@pytest.fixture
def no_jitter(monkeypatch):
    monkeypatch.setattr(agents_module, "BID_JITTER", 0.0)


def _agent(config: TenderConfig, **kwargs) -> BiddingAgent:
    params = dict(
        player_id=0,
        config=config,
        archetype=Archetype.ADAPTIVE,
        base_quality=5.0,
        experience=10.0,
        bid_strategy=100.0,
        target_profit_margin=0.2,
        cost_estimation_accuracy=1.0,
        market_knowledge=0.0,
    )
    params.update(kwargs)
    return BiddingAgent(**params)


def _small_tender(value: float = 100.0, complexity: float = 1.0) -> Tender:
    return Tender(
        id=1,
        kind=TenderKind.SMALL,
        value=value,
        complexity_factor=complexity,
        estimated_cost=75.0,
    )


def test_bid_construction_follows_margin_and_risk(exact_config, no_jitter) -> None:
    agent = _agent(exact_config)
    bid = agent.prepare_bid(_small_tender(), RandomSource(1))
    # cost 70 + 5 surcharge, ideal 75 / 0.8, medium risk band, experience 10
    assert agent.cost_estimate == pytest.approx(75.0)
    assert agent.ideal_bid == pytest.approx(93.75)
    assert bid == pytest.approx(91.91)
    assert agent.current_profit_margin == pytest.approx((91.91 - 75.0) / 91.91)
    assert agent.total_bids == 1
    assert list(agent.bid_history) == [bid]


def test_low_experience_raises_the_bid(exact_config, no_jitter) -> None:
    agent = _agent(exact_config, experience=2.0)
    bid = agent.prepare_bid(_small_tender(), RandomSource(1))
    assert agent.risk_attitude == pytest.approx(0.10)
    assert bid == pytest.approx(93.75 + 93.75 * 0.05 + 0.1, abs=0.01)


def test_bid_above_value_is_capped_by_awareness(exact_config, no_jitter) -> None:
    informed = _agent(exact_config, bid_strategy=200.0, market_knowledge=1.0)
    assert informed.prepare_bid(_small_tender(), RandomSource(1)) == pytest.approx(100.0)

    naive = _agent(exact_config, bid_strategy=200.0, market_knowledge=0.0)
    bid = naive.prepare_bid(_small_tender(), RandomSource(1))
    assert 100.0 < bid < 183.31


def test_bid_never_falls_below_floor(no_jitter) -> None:
    cfg = TenderConfig().copy_with_overrides(
        {"MAX_COST_ACCURACY": 1.0, "TENDER_PROFILES.small.cost_ratio_range": (0.0, 0.0)}
    )
    agent = _agent(cfg, experience=0.0)
    bid = agent.prepare_bid(_small_tender(complexity=0.0), RandomSource(1))
    assert bid == 1.0


def test_bids_are_positive_under_random_draws(config: TenderConfig, random_source: RandomSource) -> None:
    players = initialize_players(config, random_source)
    tender = _small_tender()
    for player in players:
        bid = player.prepare_bid(tender, random_source)
        assert bid >= 1.0
        assert config.MIN_QUALITY <= player.current_quality <= config.MAX_QUALITY


def test_adjusted_margin_rules() -> None:
    cfg = TenderConfig()
    aggressive = _agent(cfg, archetype=Archetype.AGGRESSIVE, target_profit_margin=0.15, risk_premium=0.03)
    assert aggressive.adjusted_margin(_small_tender()) == pytest.approx(0.18)

    conservative = _agent(
        cfg,
        archetype=Archetype.CONSERVATIVE,
        target_profit_margin=0.15,
        risk_premium=0.03,
        margin_sensitivity=1.0,
    )
    large = Tender(id=2, kind=TenderKind.LARGE, value=150.0, complexity_factor=1.5, estimated_cost=90.0)
    assert conservative.adjusted_margin(large) == pytest.approx(0.15 - 0.02 - 0.01 - 0.03)

    floor = _agent(cfg, archetype=Archetype.CONSERVATIVE, target_profit_margin=0.02, risk_premium=0.05)
    assert floor.adjusted_margin(large) == pytest.approx(cfg.MIN_PROFIT_MARGIN)


@pytest.mark.parametrize(
    "experience, expected",
    [(2.0, 0.10), (10.0, 0.05), (20.0, 0.02)],
)
def test_risk_attitude_bands(experience, expected) -> None:
    agent = _agent(TenderConfig(), experience=experience)
    assert agent.risk_attitude == pytest.approx(expected)


def test_constructor_clamps_inputs() -> None:
    cfg = TenderConfig()
    agent = _agent(cfg, bid_strategy=500.0, base_quality=20.0, target_profit_margin=0.9, experience=-3.0)
    assert agent.bid_strategy == cfg.MAX_BID_STRATEGY
    assert agent.base_quality == cfg.MAX_QUALITY
    assert agent.target_profit_margin == cfg.MAX_PROFIT_MARGIN
    assert agent.experience == 0.0


def test_histories_are_bounded(config: TenderConfig, random_source: RandomSource) -> None:
    agent = _agent(config, cost_estimation_accuracy=0.7)
    tender = _small_tender()
    for _ in range(60):
        agent.prepare_bid(tender, random_source)
    assert agent.total_bids == 60
    assert len(agent.bid_history) == config.BID_HISTORY_LIMIT
    assert len(agent.quality_history) == config.QUALITY_HISTORY_LIMIT
    assert len(agent.cost_estimate_history) == config.COST_ESTIMATE_HISTORY_LIMIT


def test_performance_metric_combines_components() -> None:
    agent = _agent(TenderConfig())
    agent.win_count = 1
    agent.total_bids = 2
    agent.profit_history.append(0.2)
    agent.market_position = 1.0
    assert agent.refresh_performance_metric() == pytest.approx(0.25 + 0.06 + 0.1)


def test_initialize_players_draws_from_archetype_ranges(config: TenderConfig, random_source: RandomSource) -> None:
    players = initialize_players(config, random_source)
    assert [p.player_id for p in players] == list(range(config.N_PLAYERS))
    low_margin, high_margin = config.INITIAL_MARGIN_RANGE
    for player in players:
        low, high = config.ARCHETYPE_PROFILES[player.archetype.value]["bid_strategy_range"]
        assert low <= player.bid_strategy <= high
        assert low_margin <= player.target_profit_margin <= high_margin
        assert player.win_count == 0
        assert player.strategy_confidence == 0.5


def test_bid_history_evicts_oldest_first(config: TenderConfig, random_source: RandomSource) -> None:
    agent = _agent(config, cost_estimation_accuracy=0.7)
    tender = _small_tender()
    submitted = [agent.prepare_bid(tender, random_source) for _ in range(55)]
    assert list(agent.bid_history) == submitted[-config.BID_HISTORY_LIMIT:]
