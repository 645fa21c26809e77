"""Simulation engine for Tender ABM."""

from __future__ import annotations

import collections
import json
import math
import os
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

import networkx as nx
import numpy as np

from .agents import BiddingAgent, initialize_players
from .analysis import summary_statistics
from .config import TenderConfig
from .evaluation import EvaluatorPanel, compute_meat_scores, final_scores, resolve_winner
from .learning import SocialLearningEngine
from .models import BidSnapshot, MarketSnapshot, RoundOutcome, RoundPhase, RoundRecord, Tender
from .random_source import RandomSource
from .tenders import TenderGenerator
from .utils import herfindahl_index, safe_divide, safe_mean, variance_to_mean


@dataclass
class SimulationContext:
    """All mutable state of one run; created by ``setup`` and owned by the simulation."""

    config: TenderConfig
    random_source: RandomSource
    meat_weights: Tuple[float, float, float]
    players: Tuple[BiddingAgent, ...]
    panel: EvaluatorPanel
    tender_generator: TenderGenerator
    learning_engine: SocialLearningEngine
    network: nx.Graph
    round_history: Deque[RoundRecord]
    winning_bids: Deque[float]
    round_number: int = 0
    active_tender: Optional[Tender] = None
    last_outcome: Optional[RoundOutcome] = None
    stopped: bool = False
    phase_trace: List[RoundPhase] = field(default_factory=list)


def build_partner_network(config: TenderConfig, random_source: RandomSource) -> nx.Graph:
    """Small-world learning-partner graph over player ids."""
    n_players = config.N_PLAYERS
    if not config.USE_SOCIAL_NETWORK or n_players < 2:
        graph = nx.empty_graph(n_players)
    elif n_players <= 3:
        graph = nx.complete_graph(n_players)
    else:
        k = max(2, min(int(config.NETWORK_N_NEIGHBORS), n_players - 1))
        graph = nx.watts_strogatz_graph(
            n=n_players,
            k=k,
            p=config.NETWORK_REWIRING_PROB,
            seed=random_source.spawn_seed(),
        )
    return graph


class TenderSimulation:
    """
    Orchestrates the repeated tender market: setup, per-round execution and
    statistics collection.

    Each round runs the phases ``GENERATE_TENDER -> COLLECT_BIDS -> EVALUATE
    -> LEARN -> RECORD_STATS`` strictly in order. Players bid against the same
    tender, evaluation reads a frozen bid snapshot, and learning reads a
    market snapshot taken after the award has settled.
    """

    def __init__(
        self,
        config: Optional[TenderConfig] = None,
        random_source: Optional[RandomSource] = None,
        log_dir: Optional[str] = None,
        run_id: Union[int, str] = "run",
    ):
        self.config = config or TenderConfig()
        self._injected_random_source = random_source
        self.run_id = str(run_id)
        self.log_dir = log_dir
        self.round_log_path: Optional[str] = None
        self.phase = RoundPhase.IDLE
        self.context: Optional[SimulationContext] = None
        self.setup()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def setup(self) -> SimulationContext:
        """Build players, evaluators and the partner network; reset all state."""
        cfg = self.config
        if self._injected_random_source is not None:
            random_source = self._injected_random_source
        else:
            random_source = RandomSource(cfg.RANDOM_SEED)

        players = tuple(initialize_players(cfg, random_source))
        panel = EvaluatorPanel.from_config(cfg, random_source)
        network = build_partner_network(cfg, random_source)
        for player in players:
            player.learning_partners = set(network.neighbors(player.player_id))

        self.context = SimulationContext(
            config=cfg,
            random_source=random_source,
            meat_weights=cfg.normalized_meat_weights(),
            players=players,
            panel=panel,
            tender_generator=TenderGenerator(cfg, random_source),
            learning_engine=SocialLearningEngine(cfg, random_source),
            network=network,
            round_history=collections.deque(maxlen=cfg.ROUND_HISTORY_LIMIT),
            winning_bids=collections.deque(maxlen=cfg.ROUND_HISTORY_LIMIT),
        )
        self.phase = RoundPhase.IDLE
        self._setup_round_log()
        return self.context

    def stop(self) -> None:
        """Signal that no further rounds should run."""
        if self.context is not None:
            self.context.stopped = True
        self.phase = RoundPhase.STOPPED

    @property
    def stopped(self) -> bool:
        return self.context is not None and self.context.stopped

    @property
    def players(self) -> Tuple[BiddingAgent, ...]:
        return self.context.players if self.context else ()

    @property
    def round_number(self) -> int:
        return self.context.round_number if self.context else 0

    @property
    def round_history(self) -> List[RoundRecord]:
        return list(self.context.round_history) if self.context else []

    @property
    def winning_bids(self) -> List[float]:
        return list(self.context.winning_bids) if self.context else []

    @property
    def last_outcome(self) -> Optional[RoundOutcome]:
        return self.context.last_outcome if self.context else None

    def run(self) -> Dict[str, Any]:
        """Advance until ``N_ROUNDS`` rounds have been played or a stop is signalled."""
        remaining = max(0, self.config.N_ROUNDS - self.round_number)
        return self.run_rounds(remaining)

    def run_rounds(self, n: int) -> Dict[str, Any]:
        """Advance up to ``n`` rounds, then return summary statistics."""
        if self.config.verbose:
            print(f"[{self.run_id}] Running {n} rounds with {len(self.players)} players...")
        for _ in range(int(n)):
            if self.stopped:
                break
            self.step()
        summary = summary_statistics(self)
        if self.config.verbose:
            print(
                f"[{self.run_id}] Finished at round {self.round_number}: "
                f"avg bid {summary['final_avg_bid']:.2f}, HHI {summary['final_hhi']:.3f}"
            )
        return summary

    def step(self) -> Optional[RoundRecord]:
        """Advance exactly one round; returns the record appended, or None once stopped.

        The run stops itself after ``N_ROUNDS`` rounds.
        """
        ctx = self.context
        if ctx is None or ctx.stopped:
            return None
        if ctx.round_number >= self.config.N_ROUNDS:
            self.stop()
            return None
        ctx.round_number += 1
        ctx.phase_trace = []

        tender = self._enter(RoundPhase.GENERATE_TENDER, self._generate_tender)
        bids = self._enter(RoundPhase.COLLECT_BIDS, self._collect_bids, tender)
        outcome = self._enter(RoundPhase.EVALUATE, self._evaluate, tender, bids)
        self._enter(RoundPhase.LEARN, self._learn, outcome)
        record = self._enter(RoundPhase.RECORD_STATS, self._record_stats, outcome)
        self.phase = RoundPhase.IDLE
        if ctx.round_number >= self.config.N_ROUNDS:
            self.stop()
        return record

    def _enter(self, phase: RoundPhase, handler, *args):
        self.phase = phase
        self.context.phase_trace.append(phase)
        return handler(*args)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def _generate_tender(self) -> Tender:
        tender = self.context.tender_generator.generate()
        self.context.active_tender = tender
        return tender

    def _collect_bids(self, tender: Tender) -> Tuple[BidSnapshot, ...]:
        random_source = self.context.random_source
        for player in self.context.players:
            player.prepare_bid(tender, random_source)
        return tuple(player.snapshot() for player in self.context.players if player.has_bid)

    def _evaluate(self, tender: Tender, bids: Tuple[BidSnapshot, ...]) -> RoundOutcome:
        ctx = self.context
        outcome = RoundOutcome(round_number=ctx.round_number, tender=tender, bids=bids)
        if not bids:
            ctx.last_outcome = outcome
            return outcome

        meat = compute_meat_scores(bids, ctx.meat_weights)
        ratings = ctx.panel.rate(meat, ctx.random_source)
        mean_ratings = ctx.panel.mean_ratings(ratings)
        scores = final_scores(
            meat, mean_ratings, self.config.MEAT_SCORE_SHARE, self.config.EVALUATOR_RATING_SHARE
        )
        resolution = resolve_winner(bids, scores, ctx.random_source)

        outcome.meat_scores = meat
        outcome.evaluator_ratings = ratings
        outcome.mean_ratings = mean_ratings
        outcome.final_scores = resolution.final_scores
        outcome.random_tie_break = resolution.random_tie_break
        if resolution.winner_index is not None:
            outcome.winner_id = bids[resolution.winner_index].player_id

        for player in ctx.players:
            player.record_award(player.player_id == outcome.winner_id)
        ctx.last_outcome = outcome
        return outcome

    def _market_snapshot(self, outcome: RoundOutcome) -> MarketSnapshot:
        players = self.context.players
        win_rates = {p.player_id: p.win_rate for p in players}
        total_wins = sum(p.win_count for p in players)
        market_shares = {p.player_id: safe_divide(p.win_count, total_wins) for p in players}
        spreads = [record.spread for record in self.context.round_history]
        window = spreads[-self.config.VOLATILITY_WINDOW:]
        return MarketSnapshot(
            round_number=outcome.round_number,
            tender=outcome.tender,
            winner_id=outcome.winner_id,
            winning_bid=outcome.winning_bid,
            win_rates=win_rates,
            market_shares=market_shares,
            average_win_rate=safe_mean(win_rates.values()),
            volatility=variance_to_mean(window),
            profiles={p.player_id: p.public_profile() for p in players},
        )

    def _learn(self, outcome: RoundOutcome) -> None:
        if not outcome.bids:
            return
        market = self._market_snapshot(outcome)
        bidder_ids = {snapshot.player_id for snapshot in outcome.bids}
        engine = self.context.learning_engine
        for player in self.context.players:
            if player.player_id in bidder_ids:
                engine.update(player, market)
        for player in self.context.players:
            player.refresh_performance_metric()

    def _record_stats(self, outcome: RoundOutcome) -> RoundRecord:
        ctx = self.context
        players = ctx.players
        total_wins = sum(p.win_count for p in players)
        hhi = herfindahl_index(safe_divide(p.win_count, total_wins) for p in players)

        if outcome.bids:
            bids = np.array([b.bid for b in outcome.bids], dtype=float)
            qualities = np.array([b.quality for b in outcome.bids], dtype=float)
            winner_experience = next(
                (b.experience for b in outcome.bids if b.player_id == outcome.winner_id), 0.0
            )
            record = RoundRecord(
                round=ctx.round_number,
                avg_bid=float(bids.mean()),
                min_bid=float(bids.min()),
                max_bid=float(bids.max()),
                spread=float(bids.max() - bids.min()),
                avg_quality=float(qualities.mean()),
                winner_experience=float(winner_experience),
                hhi=hhi,
            )
        else:
            record = RoundRecord(ctx.round_number, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, hhi)

        ctx.round_history.append(record)
        if outcome.winning_bid is not None:
            ctx.winning_bids.append(outcome.winning_bid)
        self._log_round_summary(record, outcome)
        return record

    # ------------------------------------------------------------------
    # Round log
    # ------------------------------------------------------------------
    def _setup_round_log(self) -> None:
        if not self.log_dir or not self.config.enable_round_logging:
            self.round_log_path = None
            return
        run_dir = os.path.join(self.log_dir, self.run_id)
        os.makedirs(run_dir, exist_ok=True)
        self.round_log_path = os.path.join(run_dir, "round_log.jsonl")
        with open(self.round_log_path, "w", encoding="utf-8") as _log_file:
            _log_file.write("")

    def _log_round_summary(self, record: RoundRecord, outcome: RoundOutcome) -> None:
        """Append a plain-text JSON record for quick diagnostics."""
        round_num = record.round
        interval = max(1, int(self.config.round_log_interval))
        is_last = round_num == self.config.N_ROUNDS
        if self.config.verbose and (round_num % interval == 0 or is_last):
            print(
                f"[{self.run_id}] Round {round_num}: tender {outcome.tender.kind.value} "
                f"value={outcome.tender.value:.2f} winner={outcome.winner_id} "
                f"avg_bid={record.avg_bid:.2f}"
            )
        if self.round_log_path is None:
            return
        if round_num % interval != 0 and not is_last:
            return
        enriched: Dict[str, Any] = record.to_dict()
        enriched["run_id"] = self.run_id
        enriched["tender_id"] = outcome.tender.id
        enriched["tender_kind"] = outcome.tender.kind.value
        enriched["tender_value"] = outcome.tender.value
        enriched["winner_id"] = outcome.winner_id
        enriched["winning_bid"] = outcome.winning_bid
        enriched["random_tie_break"] = outcome.random_tie_break
        for key, value in list(enriched.items()):
            if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
                enriched[key] = 0.0
        with open(self.round_log_path, "a", encoding="utf-8") as log_file:
            log_file.write(json.dumps(enriched, default=float) + "\n")
