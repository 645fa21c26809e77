"""Command-line entry point for Tender ABM runs."""

from __future__ import annotations

import argparse
import copy
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .analysis import players_frame, round_statistics_frame
from .config import (
    ScenarioProfile,
    TenderConfig,
    apply_scenario_profile,
    get_scenario_profile,
    list_scenario_profiles,
    load_scenario_profile,
)
from .simulation import TenderSimulation


def _print_scenario_catalog() -> None:
    """Display the registered scenario profiles."""
    catalog: List[ScenarioProfile] = sorted(list_scenario_profiles(), key=lambda profile: profile.name.lower())
    print("Available scenario profiles:")
    for profile in catalog:
        print(f"  - {profile.name}: {profile.description}")


def _write_config_dump(config: TenderConfig, destination: str) -> Path:
    """Persist the resolved configuration to ``destination``."""
    target = Path(destination).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(config.snapshot(), handle, indent=2, sort_keys=True)
    print(f"[CLI] Wrote configuration snapshot to {target}")
    return target


def _persist_results(
    results_directory: str,
    sim: TenderSimulation,
    cli_args: Optional[Dict[str, Any]],
    scenario_metadata: Optional[List[Dict[str, Any]]],
) -> Dict[str, str]:
    """Store round statistics, final player states and the config snapshot."""
    root = Path(results_directory).expanduser()
    root.mkdir(parents=True, exist_ok=True)
    rounds_path = root / "round_statistics.csv"
    players_path = root / "players.csv"
    snapshot_path = root / "config_snapshot.json"
    round_statistics_frame(sim).to_csv(rounds_path, index=False)
    players_frame(sim).to_csv(players_path, index=False)
    payload = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "cli_args": cli_args or {},
        "scenario_profiles": scenario_metadata or [],
        "config": sim.config.snapshot(),
    }
    with snapshot_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True, default=str)
    return {
        "round_statistics": str(rounds_path),
        "players": str(players_path),
        "config_snapshot": str(snapshot_path),
    }


def _parse_cli_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tender ABM repeated procurement market simulator")
    parser.add_argument("--rounds", type=int, help="Number of rounds to simulate.")
    parser.add_argument("--players", type=int, help="Number of bidding players.")
    parser.add_argument("--random-seed", type=int, help="Override the RNG seed.")
    parser.add_argument("--price-weight", type=float, help="MEAT weight for price.")
    parser.add_argument("--quality-weight", type=float, help="MEAT weight for quality.")
    parser.add_argument("--experience-weight", type=float, help="MEAT weight for experience.")
    parser.add_argument("--social-learning-rate", type=float, help="Fraction of a strategy gap closed on imitation.")
    parser.add_argument("--imitation-threshold", type=float, help="Influence-weighted performance gap needed to imitate.")
    parser.add_argument("--market-intelligence", type=float, help="Market intelligence level in [0, 1].")
    parser.add_argument(
        "--scenario",
        help="Apply a named scenario profile before the individual overrides.",
    )
    parser.add_argument(
        "--scenario-file",
        help="Path to a JSON scenario definition applied on top of --scenario.",
    )
    parser.add_argument(
        "--list-scenarios",
        action="store_true",
        help="List available scenario profiles and exit.",
    )
    parser.add_argument(
        "--dump-config",
        help="Optional path to write the resolved configuration JSON before execution.",
    )
    parser.add_argument(
        "--results-dir",
        help="Directory for round statistics, final player states and the config snapshot.",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress per-round progress output.")
    return parser.parse_args(args=list(argv) if argv is not None else None)


_DIRECT_OVERRIDES = {
    "rounds": "N_ROUNDS",
    "players": "N_PLAYERS",
    "random_seed": "RANDOM_SEED",
    "price_weight": "WEIGHT_PRICE",
    "quality_weight": "WEIGHT_QUALITY",
    "experience_weight": "WEIGHT_EXPERIENCE",
    "social_learning_rate": "SOCIAL_LEARNING_RATE",
    "imitation_threshold": "IMITATION_THRESHOLD",
    "market_intelligence": "MARKET_INTELLIGENCE_LEVEL",
}


def run_cli(
    base_config: Optional[TenderConfig] = None,
    argv: Optional[Iterable[str]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Parse CLI arguments, run the simulation and return its summary statistics.
    Returns None when only the scenario catalog was requested or on a scenario error.
    """
    args = _parse_cli_args(argv)
    if args.list_scenarios:
        _print_scenario_catalog()
        return None

    base_cfg = copy.deepcopy(base_config or TenderConfig())
    scenario_metadata: List[Dict[str, Any]] = []
    try:
        if args.scenario:
            profile = get_scenario_profile(args.scenario)
            base_cfg = apply_scenario_profile(base_cfg, profile)
            scenario_metadata.append(profile.to_metadata())
        if args.scenario_file:
            file_profile = load_scenario_profile(args.scenario_file)
            base_cfg = apply_scenario_profile(base_cfg, file_profile)
            scenario_metadata.append(file_profile.to_metadata())
    except (FileNotFoundError, ValueError, KeyError) as exc:
        print(f"[CLI] Scenario error: {exc}")
        return None

    overrides = {
        field_name: getattr(args, arg_name)
        for arg_name, field_name in _DIRECT_OVERRIDES.items()
        if getattr(args, arg_name) is not None
    }
    base_cfg = base_cfg.copy_with_overrides(overrides)
    base_cfg.verbose = not args.quiet

    if not args.quiet:
        print("[CLI] Tender ABM launcher starting")
        print(f"[CLI] Players: {base_cfg.N_PLAYERS}, rounds: {base_cfg.N_ROUNDS}, seed: {base_cfg.RANDOM_SEED}")
        if scenario_metadata:
            print(f"[CLI] Scenario profiles applied: {', '.join(meta['name'] for meta in scenario_metadata)}")

    if args.dump_config:
        _write_config_dump(base_cfg, args.dump_config)

    sim = TenderSimulation(base_cfg, log_dir=args.results_dir, run_id="cli")
    summary = sim.run()

    if args.results_dir:
        summary["artefacts"] = _persist_results(args.results_dir, sim, vars(args), scenario_metadata)
        if not args.quiet:
            print(f"[CLI] Results directory: {args.results_dir}")

    if not args.quiet:
        print(
            f"[CLI] Rounds played: {summary['rounds_played']}, "
            f"final avg bid: {summary['final_avg_bid']:.2f}, "
            f"bid decline: {summary['bid_decline_pct']:.1f}%, "
            f"mean target margin: {summary['mean_target_margin']:.3f}"
        )
        print("[CLI] Task completed.")
    return summary


def main(argv: Optional[Iterable[str]] = None) -> None:  # pragma: no cover - thin wrapper
    run_cli(argv=argv)


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["run_cli", "main"]
