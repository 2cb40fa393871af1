from depthtune.domain.defs import SavePointTuning
from depthtune.services.save_point_service import SavePointScheduler
from tests.helpers.fakes import build_collaborators


def _build_scheduler(**tuning):
    collaborators, fakes = build_collaborators()
    scheduler = SavePointScheduler(
        tuning=SavePointTuning(**tuning),
        collaborators=collaborators,
        snapshot=lambda: {"player_id": "diver-1"},
    )
    scheduler.start(0.0, 0.0)
    return scheduler, fakes


def test_auto_save_fires_after_interval() -> None:
    scheduler, fakes = _build_scheduler()
    assert scheduler.tick(30.0, 0.0) is None
    request = scheduler.tick(60.0, 0.0)

    assert request is not None and request.kind == "auto_save"
    assert request.details["profile"] == {"player_id": "diver-1"}
    assert fakes["saves"].requests == [request]
    assert scheduler.tick(90.0, 0.0) is None


def test_depth_change_triggers_save() -> None:
    scheduler, _ = _build_scheduler(enable_auto_save=False)
    assert scheduler.tick(10.0, 9.0) is None
    request = scheduler.tick(11.0, 12.0)
    assert request is not None and request.kind == "depth_change"
    assert request.details["previous_depth"] == 0.0
    assert scheduler.tick(12.0, 15.0) is None


def test_safe_zone_entry_saves_and_shows_indicator() -> None:
    scheduler, fakes = _build_scheduler()
    request = scheduler.enter_safe_zone(5.0, 20.0)
    assert request is not None and request.kind == "safe_zone"
    assert scheduler.in_safe_zone
    assert ("Safe zone saved", "save") in fakes["notifications"].messages


def test_manual_save_requires_safe_zone() -> None:
    scheduler, fakes = _build_scheduler()
    assert scheduler.manual_save(1.0, 0.0) is None
    assert fakes["saves"].requests == []
    assert fakes["notifications"].messages[0][1] == "warning"

    scheduler.enter_safe_zone(2.0, 0.0)
    scheduler.exit_safe_zone()
    assert scheduler.manual_save(3.0, 0.0) is None

    scheduler.enter_safe_zone(4.0, 0.0)
    request = scheduler.manual_save(5.0, 0.0)
    assert request is not None and request.kind == "manual"


def test_checkpoint_carries_label() -> None:
    scheduler, fakes = _build_scheduler()
    request = scheduler.checkpoint(7.0, 33.0, "boss_gate")
    assert request.details["label"] == "boss_gate"
    assert scheduler.last_request is request
    assert ("Checkpoint saved", "save") in fakes["notifications"].messages
