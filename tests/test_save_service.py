from __future__ import annotations

import json
from copy import deepcopy

import pytest

from depthtune.core.rng import RNG
from depthtune.data.repositories import ExperimentsRepository, MilestonesRepository
from depthtune.domain.defs import ExperimentGroup
from depthtune.domain.journey import JourneyStage
from depthtune.domain.state import ProfileState
from depthtune.services.errors import SaveLoadError
from depthtune.services.save_service import ProfileSaveService


def _build_state() -> ProfileState:
    return ProfileState(
        player_id="diver-1",
        skill_factor=0.93,
        dynamic_adjustment=1.1,
        achieved_milestones={"first_dive", "first_kill"},
        experiment_assignments={"tutorial_length": ExperimentGroup.VARIANT},
        journey_stage=JourneyStage.ENGAGEMENT,
        stage_entry_times={
            JourneyStage.DISCOVERY: 0.0,
            JourneyStage.ONBOARDING: 40.0,
            JourneyStage.ENGAGEMENT: 400.0,
        },
        market_factors={"copper_ore": 1.05},
        economy_epoch=2,
        deepest_depth=47.5,
        missions_completed=3,
        first_seen_at=0.0,
        dives_started=4,
    )


def _build_service() -> ProfileSaveService:
    return ProfileSaveService(milestones_repo=MilestonesRepository(), experiments_repo=ExperimentsRepository())


def test_round_trip_preserves_state_and_rng() -> None:
    service = _build_service()
    rng = RNG(99)
    rng.random()
    payload = json.loads(json.dumps(service.serialize(_build_state(), rng)))
    expected_next = rng.random()

    state, restored_rng = service.deserialize(payload)

    assert state == _build_state()
    assert restored_rng is not None
    assert restored_rng.seed == 99
    assert restored_rng.random() == expected_next


def test_payload_carries_version_and_metadata() -> None:
    payload = _build_service().serialize(_build_state())
    assert payload["save_version"] == ProfileSaveService.SAVE_VERSION
    assert payload["metadata"]["journey_stage"] == "engagement"
    assert "rng" not in payload


def test_deserialize_without_rng_returns_none() -> None:
    service = _build_service()
    _, rng = service.deserialize(service.serialize(_build_state()))
    assert rng is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda payload: payload.update(save_version=99),
        lambda payload: payload.pop("state"),
        lambda payload: payload["state"].update(player_id=""),
        lambda payload: payload["state"].update(skill_factor="high"),
        lambda payload: payload["state"].update(journey_stage="legend"),
        lambda payload: payload["state"].update(achieved_milestones=["not_a_milestone"]),
        lambda payload: payload["state"].update(experiment_assignments={"tutorial_length": "treatment"}),
        lambda payload: payload["state"].update(experiment_assignments={"unknown_test": "control"}),
        lambda payload: payload["state"].update(missions_completed=-1),
        lambda payload: payload["state"].update(dives_started=-2),
        lambda payload: payload["state"].update(journey_stage="onboarding"),
        lambda payload: payload.update(rng={"seed": 1, "version": 3, "state": "garbage", "gauss": None}),
    ],
)
def test_malformed_payloads_are_rejected(mutate) -> None:
    service = _build_service()
    payload = deepcopy(service.serialize(_build_state()))
    mutate(payload)
    with pytest.raises(SaveLoadError):
        service.deserialize(payload)


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(SaveLoadError):
        _build_service().deserialize(["not", "a", "save"])  # type: ignore[arg-type]


def test_without_repositories_unknown_ids_are_kept() -> None:
    service = ProfileSaveService()
    payload = service.serialize(_build_state())
    payload["state"]["achieved_milestones"] = ["custom_milestone"]
    state, _ = service.deserialize(payload)
    assert state.achieved_milestones == {"custom_milestone"}


def test_older_payload_without_dive_count_defaults_to_zero() -> None:
    service = ProfileSaveService()
    payload = service.serialize(_build_state())
    del payload["state"]["dives_started"]

    state, _ = service.deserialize(payload)

    assert state.dives_started == 0
