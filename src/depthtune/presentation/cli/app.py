"""Command line front-end: runs a synthetic session against the engine."""
from __future__ import annotations

import argparse
from collections import Counter
from dataclasses import asdict
from pathlib import Path
from typing import List, Sequence

from depthtune.core.analytics import RecordingAnalyticsSink, configure_logging, normalize_log_level
from depthtune.core.rng import RNG
from depthtune.core.types import Activity
from depthtune.domain.depth import MAX_DEPTH
from depthtune.domain.penalty import DeathContext, DeathReport
from depthtune.domain.rewards import MissionReward
from depthtune.services import Collaborators, ExperienceEngine, FactoryError, create_engine
from depthtune.presentation.cli.config import get_default_config_path, load_config
from depthtune.presentation.cli.render import render_bullet_lines, render_counts, render_fields, render_heading

_RESOURCE_IDS = ("scrap_metal", "copper_ore", "energy_cell", "titanium_ore", "abyssal_crystal", "ancient_core")
_TICK_SECONDS = 1.0
_REST_EVERY = 120.0
_REST_LENGTH = 10.0
_MISSION_EVERY = 180.0


class ConsoleNotifications:
    """Notification gateway that prints toasts and hints."""

    def __init__(self, *, quiet: bool = False) -> None:
        self._quiet = quiet
        self.messages: List[str] = []

    def notify(self, message: str, *, kind: str = "info") -> None:
        self.messages.append(f"[{kind}] {message}")
        if not self._quiet:
            print(f"[{kind}] {message}")

    def show_hint(self, text: str) -> None:
        self.notify(text, kind="hint")


class SimulatedInventory:
    """Inventory gateway that just tallies what it was asked to do."""

    def __init__(self) -> None:
        self.credits = 0
        self.xp = 0
        self.penalties: List[DeathReport] = []

    def apply_death_penalty(self, report: DeathReport) -> None:
        self.penalties.append(report)

    def grant_credits(self, amount: int, reason: str) -> None:
        self.credits += amount

    def grant_xp(self, amount: int, reason: str) -> None:
        self.xp += amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="depthtune", description="Adaptive difficulty and pacing engine tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    simulate = subparsers.add_parser("simulate", help="Run a synthetic dive session and print summaries.")
    simulate.add_argument("--seed", type=int, default=None, help="Engine seed (defaults to the user config).")
    simulate.add_argument("--minutes", type=float, default=15.0, help="Simulated session length.")
    simulate.add_argument("--player", default="sim-player", help="Player id used for experiment assignment.")
    simulate.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
    simulate.add_argument("--definitions", type=Path, default=None, help="Directory holding definition JSON files.")
    simulate.add_argument("--config", type=Path, default=None, help="User config path.")
    simulate.add_argument("--quiet", action="store_true", help="Do not echo notifications while simulating.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the `depthtune` console script."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config or get_default_config_path())
    configure_logging(normalize_log_level(args.log_level, config["log_level"]))
    seed = args.seed if args.seed is not None else config["seed"]
    if args.command == "simulate":
        return _run_simulation(args, seed)
    return 2


def _run_simulation(args: argparse.Namespace, seed: int) -> int:
    sink = RecordingAnalyticsSink()
    notifications = ConsoleNotifications(quiet=args.quiet)
    inventory = SimulatedInventory()
    collaborators = Collaborators(inventory=inventory, notifications=notifications, analytics=sink)
    try:
        engine = create_engine(args.player, base_path=args.definitions, seed=seed, collaborators=collaborators)
    except FactoryError as exc:
        print(f"Unable to start: {exc}")
        return 1
    simulate_session(engine, seed=seed, minutes=max(0.0, args.minutes))
    _render_summary(engine, sink, inventory)
    return 0


def simulate_session(engine: ExperienceEngine, *, seed: int, minutes: float) -> None:
    """Drive one session with scripted random behavior.

    Depth rises linearly to 80 % of the maximum; deaths get likelier with
    depth; a mission completes every three minutes.
    """
    sim = RNG(seed + 1)
    duration = minutes * 60.0
    engine.start_session(0.0, 0.0, is_new_player=True)
    engine.start_dive(0.0, 0.0)
    now = 0.0
    depth = 0.0
    dive_started = 0.0
    missions = 0
    while now < duration:
        now += _TICK_SECONDS
        depth = min(MAX_DEPTH * 0.8, now / max(duration, 1.0) * MAX_DEPTH * 0.8)
        activity = _pick_activity(engine, now)
        engine.tick(now, _TICK_SECONDS, activity, depth)
        if activity == "exploration" and sim.random() < 0.05:
            engine.on_resource_collected(sim.choice(_RESOURCE_IDS), sim.randint(1, 3), now=now)
        if engine.components.throttle.in_combat and sim.random() < 0.15:
            profile = engine.components.scaler.pick_profile(depth, sim)
            if profile is not None:
                stats = engine.scale_stats(profile, depth)
                engine.on_enemy_defeated(profile.id, stats.xp_reward, stats.credit_reward, now=now)
            engine.end_combat(now)
        if sim.random() < 0.0005 + depth / MAX_DEPTH * 0.002:
            engine.record_death(depth, "simulated", now=now)
            engine.apply_death_penalty(
                DeathContext(depth=depth, cause="simulated", session_duration=now - dive_started)
            )
            engine.end_dive(now)
            engine.start_dive(now, depth)
            dive_started = now
        if now - missions * _MISSION_EVERY >= _MISSION_EVERY:
            missions += 1
            mission_id = f"sim_mission_{missions}"
            engine.on_mission_started(mission_id, now=now)
            engine.on_mission_completed(
                MissionReward(mission_id=mission_id, credits=100 * missions, xp=50 * missions),
                completion_time=_MISSION_EVERY,
                now=now,
            )
            engine.record_success(_MISSION_EVERY, depth, now=now)
    engine.end_session(now, depth)


def _pick_activity(engine: ExperienceEngine, now: float) -> Activity:
    if engine.components.throttle.in_combat:
        return "combat"
    if now % _REST_EVERY < _REST_LENGTH:
        return "rest"
    return "exploration"


def _render_summary(engine: ExperienceEngine, sink: RecordingAnalyticsSink, inventory: SimulatedInventory) -> None:
    render_heading("Difficulty")
    render_fields(asdict(engine.difficulty.snapshot(engine.components.journey.deepest_depth)))
    paces = sink.events("session_pace")
    if paces:
        render_heading("Session pace")
        render_fields(paces[-1])
    report = engine.journey_report()
    render_heading("Journey")
    render_fields(
        {
            "stage": report.current_stage.label,
            "stage_progress": report.stage_progress,
            "missions_completed": report.missions_completed,
            "deepest_depth": report.deepest_depth,
            "deaths": report.death_count,
            "checkpoints": report.total_checkpoints,
        }
    )
    render_bullet_lines(report.recommendations)
    render_heading("Milestones")
    render_bullet_lines(sorted(engine.components.rewards.achieved_milestones) or ["none"])
    render_heading("Inventory")
    render_fields({"credits": inventory.credits, "xp": inventory.xp, "penalties": len(inventory.penalties)})
    render_heading("Analytics")
    render_counts(Counter(event for event, _ in sink.records))
