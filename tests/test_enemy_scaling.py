import json
from pathlib import Path

import pytest

from depthtune.core.rng import RNG
from depthtune.data.repositories import BossesRepository, EnemiesRepository
from depthtune.domain.defs import EnemyProfileDef, PatrollingEnemyDef
from depthtune.domain.enemy_scaling import DEFAULT_BOSS_PHASE
from depthtune.services.difficulty_service import DifficultyController
from depthtune.services.enemy_scaling_service import EnemyScaler


def _write_json(path: Path, payload: dict) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _profile(**overrides) -> EnemyProfileDef:
    fields = {"id": "mech_fish", "name": "Mech Fish", "base_health": 100.0, "base_damage": 10.0, "base_speed": 5.0}
    fields.update(overrides)
    return EnemyProfileDef(**fields)


def _build_scaler(tmp_path: Path | None = None) -> EnemyScaler:
    if tmp_path is None:
        return EnemyScaler(DifficultyController())
    _write_json(
        tmp_path / "bosses.json",
        {
            "iron_claw": {
                "name": "Iron Claw",
                "phases": [
                    {"name": "calm", "health_threshold": 1.0},
                    {"name": "angry", "health_threshold": 0.5, "damage_multiplier": 1.5},
                    {"name": "enraged", "health_threshold": 0.2, "enraged": True},
                ],
            }
        },
    )
    _write_json(
        tmp_path / "enemies.json",
        {
            "shallow_fish": {"name": "Shallow", "base_health": 50, "base_damage": 5, "base_speed": 4},
            "deep_angler": {
                "name": "Angler",
                "base_health": 200,
                "base_damage": 20,
                "base_speed": 3,
                "min_spawn_depth": 60,
            },
        },
    )
    return EnemyScaler(
        DifficultyController(),
        enemies_repo=EnemiesRepository(tmp_path),
        bosses_repo=BossesRepository(tmp_path),
    )


def test_surface_stats_match_base_profile() -> None:
    stats = _build_scaler().scale_stats(_profile(), 0.0)

    assert stats.max_health == pytest.approx(100.0)
    assert stats.damage == pytest.approx(10.0)
    assert stats.move_speed == pytest.approx(5.0)
    assert stats.xp_reward == 75
    assert stats.credit_reward == 26
    assert stats.spawn_weight == pytest.approx(0.5)
    assert stats.patrol_radius is None
    assert stats.is_elite is False


def test_max_depth_applies_curve_and_difficulty() -> None:
    stats = _build_scaler().scale_stats(_profile(), 100.0)

    assert stats.max_health == pytest.approx(100.0 * 5.0 * 5.0)
    assert stats.damage == pytest.approx(10.0 * 3.0 * 5.0)
    assert stats.move_speed == pytest.approx(5.0 * 1.3)


def test_scaled_health_grows_with_depth() -> None:
    scaler = _build_scaler()
    healths = [scaler.scale_stats(_profile(), depth).max_health for depth in range(0, 101, 10)]
    assert healths == sorted(healths)


def test_patrolling_profile_reports_scaled_radius() -> None:
    profile = PatrollingEnemyDef(
        id="drone", name="Drone", base_health=80.0, base_damage=8.0, base_speed=6.0, patrol_radius=10.0
    )
    stats = _build_scaler().scale_stats(profile, 100.0)
    assert stats.patrol_radius == pytest.approx(13.0)


def test_elite_modifiers_are_applied_once() -> None:
    scaler = _build_scaler()
    base = scaler.scale_stats(_profile(), 0.0)
    elite = scaler.apply_elite(base)

    assert elite.is_elite
    assert elite.max_health == pytest.approx(base.max_health * 2.0)
    assert elite.xp_reward == base.xp_reward * 2
    assert scaler.apply_elite(elite) == elite


def test_elite_chance_spans_configured_range() -> None:
    scaler = _build_scaler()
    assert scaler.elite_chance(0.0) == pytest.approx(0.05)
    assert scaler.elite_chance(100.0) == pytest.approx(0.30)
    assert scaler.elite_chance(50.0) == pytest.approx(0.175)


def test_boss_phase_selection(tmp_path: Path) -> None:
    scaler = _build_scaler(tmp_path)

    assert scaler.get_current_boss_phase("iron_claw", 1.0).name == "calm"
    assert scaler.get_current_boss_phase("iron_claw", 0.6).name == "angry"
    assert scaler.get_current_boss_phase("iron_claw", 0.2).name == "enraged"
    assert scaler.get_current_boss_phase("iron_claw", 0.0).name == "enraged"
    assert scaler.get_current_boss_phase("iron_claw", -3.0).name == "enraged"


def test_unknown_boss_returns_default_phase(tmp_path: Path) -> None:
    scaler = _build_scaler(tmp_path)
    assert scaler.get_current_boss_phase("nobody", 0.5) is DEFAULT_BOSS_PHASE


def test_pick_profile_respects_min_spawn_depth(tmp_path: Path) -> None:
    scaler = _build_scaler(tmp_path)
    rng = RNG(3)

    shallow = {scaler.pick_profile(10.0, rng).id for _ in range(50)}
    deep = {scaler.pick_profile(80.0, rng).id for _ in range(200)}

    assert shallow == {"shallow_fish"}
    assert deep == {"shallow_fish", "deep_angler"}


def test_spawn_stats_without_profiles_returns_none() -> None:
    assert _build_scaler().spawn_stats(50.0, RNG(1)) is None
