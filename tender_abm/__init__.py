"""Public API for the Tender ABM package.

Agent-based simulation of a repeated public-procurement tender market in which
suppliers compete under MEAT (Most Economically Advantageous Tender) evaluation
and learn from their own outcomes and from network partners.
"""

__version__ = "1.0.0"

from .agents import BiddingAgent, initialize_players
from .analysis import (
    archetype_distribution,
    cost_estimation_accuracy,
    current_bids,
    experience_levels,
    experience_performance_correlation,
    ideal_bids,
    learning_speeds,
    market_shares,
    players_frame,
    profit_margins,
    qualities,
    risk_premiums,
    round_statistics_frame,
    summary_statistics,
    win_rates,
    winning_bids,
)
from .cli import run_cli
from .config import (
    ScenarioProfile,
    TenderConfig,
    apply_scenario_profile,
    get_scenario_profile,
    list_scenario_profiles,
    load_scenario_profile,
)
from .evaluation import EvaluatorAgent, EvaluatorPanel, compute_meat_scores, resolve_winner
from .learning import SocialLearningEngine
from .models import (
    Archetype,
    BidSnapshot,
    EvaluatorAttitude,
    RoundOutcome,
    RoundPhase,
    RoundRecord,
    Tender,
    TenderKind,
)
from .random_source import RandomSource
from .simulation import TenderSimulation
from .tenders import TenderGenerator

__all__ = [
    "__version__",
    "BiddingAgent",
    "initialize_players",
    "archetype_distribution",
    "cost_estimation_accuracy",
    "current_bids",
    "experience_levels",
    "experience_performance_correlation",
    "ideal_bids",
    "learning_speeds",
    "market_shares",
    "players_frame",
    "profit_margins",
    "qualities",
    "risk_premiums",
    "round_statistics_frame",
    "summary_statistics",
    "win_rates",
    "winning_bids",
    "run_cli",
    "ScenarioProfile",
    "TenderConfig",
    "apply_scenario_profile",
    "get_scenario_profile",
    "list_scenario_profiles",
    "load_scenario_profile",
    "EvaluatorAgent",
    "EvaluatorPanel",
    "compute_meat_scores",
    "resolve_winner",
    "SocialLearningEngine",
    "Archetype",
    "BidSnapshot",
    "EvaluatorAttitude",
    "RoundOutcome",
    "RoundPhase",
    "RoundRecord",
    "Tender",
    "TenderKind",
    "RandomSource",
    "TenderSimulation",
    "TenderGenerator",
]
