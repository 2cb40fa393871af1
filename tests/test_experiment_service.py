from types import MappingProxyType

import pytest

from depthtune.domain.defs import ExperimentDef, ExperimentGroup, GroupAllocation
from depthtune.services.experiment_service import ExperimentAssigner, assign_group
from tests.helpers.fakes import build_collaborators


def _experiment(test_id: str = "tutorial_length", control: int = 50, variant: int = 50, **overrides) -> ExperimentDef:
    fields = {
        "id": test_id,
        "name": test_id.replace("_", " "),
        "groups": (
            GroupAllocation(ExperimentGroup.CONTROL, control),
            GroupAllocation(ExperimentGroup.VARIANT, variant),
        ),
        "control_config": MappingProxyType({"tutorial_steps": 12}),
        "variant_config": MappingProxyType({"tutorial_steps": 6}),
        "required_sample_size": 4,
    }
    fields.update(overrides)
    return ExperimentDef(**fields)


def _build_assigner(*experiments: ExperimentDef):
    collaborators, fakes = build_collaborators()
    return ExperimentAssigner(experiments or (_experiment(),), collaborators=collaborators), fakes


def test_assignment_is_stable_for_same_player() -> None:
    experiment = _experiment()
    first = assign_group("player-123", experiment)
    assert all(assign_group("player-123", experiment) is first for _ in range(20))
    assert first in (ExperimentGroup.CONTROL, ExperimentGroup.VARIANT)


@pytest.mark.parametrize(("control", "variant"), [(50, 50), (70, 30)])
def test_distribution_matches_allocations_within_three_percent(control: int, variant: int) -> None:
    experiment = _experiment(control=control, variant=variant)
    total = 10_000
    variants = sum(1 for index in range(total) if assign_group(f"player-{index}", experiment) is ExperimentGroup.VARIANT)
    assert abs(variants / total - variant / 100) <= 0.03


def test_unknown_experiment_is_not_assigned() -> None:
    assigner, _ = _build_assigner()
    assert assigner.assign_group("p1", "missing") is ExperimentGroup.NOT_ASSIGNED


def test_assign_all_respects_eligibility() -> None:
    assigner, _ = _build_assigner(
        _experiment("tutorial_length", new_players_only=True),
        _experiment("veteran_rewards", existing_players_only=True),
        _experiment("retired", active=False),
    )
    assert set(assigner.assign_all("p1", is_new_player=True)) == {"tutorial_length"}
    assert set(assigner.assign_all("p2", is_new_player=False)) == {"veteran_rewards"}
    assert assigner.current_player == "p2"
    assert assigner.get_experiment("retired").active is False
    assert assigner.get_experiment("missing") is None


def test_get_config_returns_group_parameters() -> None:
    assigner, _ = _build_assigner(_experiment(control=0, variant=100))
    assigner.assign_all("p1", is_new_player=True)
    assert assigner.get_config("tutorial_length") == {"tutorial_steps": 6}


def test_get_config_without_assignment_notifies_and_returns_empty() -> None:
    assigner, fakes = _build_assigner()
    assert dict(assigner.get_config("tutorial_length")) == {}
    assert ("assignment unavailable", "warning") in fakes["notifications"].messages


def test_restore_assignments_overrides_hashing() -> None:
    assigner, _ = _build_assigner(_experiment(control=100, variant=0))
    assigner.restore_assignments("p1", {"tutorial_length": ExperimentGroup.VARIANT})
    assert assigner.assign_group("p1", "tutorial_length") is ExperimentGroup.VARIANT
    assert assigner.assignments_for("p1") == {"tutorial_length": ExperimentGroup.VARIANT}


def test_report_aggregates_metrics_per_group() -> None:
    assigner, fakes = _build_assigner(_experiment(control=100, variant=0))
    for player in ("a", "b"):
        assigner.assign_all(player, is_new_player=True)
        assigner.log_metric("tutorial_length", "session_length", 100.0)
    assigner.restore_assignments("c", {"tutorial_length": ExperimentGroup.VARIANT})
    assigner.log_metric("tutorial_length", "session_length", 150.0)
    assigner.log_conversion("tutorial_length", "first_dive")

    report = assigner.generate_report("tutorial_length")

    assert report is not None
    assert report.control_group_size == 2
    assert report.variant_group_size == 1
    assert not report.sample_complete
    metric = report.metrics["session_length"]
    assert metric.control_value == pytest.approx(100.0)
    assert metric.variant_value == pytest.approx(150.0)
    assert metric.lift == pytest.approx(0.5)
    assert report.metrics["conversion:first_dive"].variant_samples == 1
    assert len(fakes["analytics"].events("experiment_metric")) == 5
    assert assigner.generate_report("missing") is None
