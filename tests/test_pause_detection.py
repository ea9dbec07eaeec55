from datetime import datetime, timedelta, timezone

import pytest

from fleetstate.models.domain import (
    Confidence,
    Coordinates,
    PenaltyInfo,
    StatusColor,
    VehicleSnapshot,
    VehicleState,
)
from fleetstate.services.classification import (
    PauseContext,
    PauseDetectionConfig,
    apply_pause,
    classify,
    detect_pause,
    to_classified_vehicle,
)
from fleetstate.services.fleet.cache import CacheEntry

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _vehicle(raw_status="Available", callsign: str = "101", **kwargs) -> VehicleSnapshot:
    return VehicleSnapshot(callsign=callsign, raw_status=raw_status, **kwargs)


def _gps(age: timedelta) -> Coordinates:
    return Coordinates(lat=51.5, lng=-0.12, timestamp=NOW - age)


def _evaluate(snapshot: VehicleSnapshot, **context_kwargs):
    classified = to_classified_vehicle(snapshot, classify(snapshot))
    context = PauseContext(now=NOW, **context_kwargs)
    decision = detect_pause(snapshot, classified, context)
    return decision, apply_pause(classified, decision)


def test_gps_exactly_at_threshold_is_not_paused():
    decision, vehicle = _evaluate(_vehicle(coordinates=_gps(timedelta(minutes=20))))

    assert not decision.paused
    assert vehicle.state == VehicleState.AVAILABLE


def test_gps_one_second_past_threshold_is_paused():
    decision, vehicle = _evaluate(_vehicle(coordinates=_gps(timedelta(minutes=20, seconds=1))))

    assert decision.paused
    assert decision.rule == "gps_stale"
    assert vehicle.state == VehicleState.BREAK
    assert vehicle.color == StatusColor.GRAY
    assert vehicle.pause_rule == "gps_stale"


def test_vehicle_never_seen_cannot_be_gps_stale():
    decision, _ = _evaluate(_vehicle(coordinates=None))

    assert not decision.paused


def test_missing_fix_uses_cached_last_seen_with_medium_confidence():
    entry = CacheEntry(
        last_seen_at=NOW - timedelta(minutes=45),
        last_known_coordinates=None,
        generation=1,
        updated_at=NOW - timedelta(minutes=1),
    )

    decision, vehicle = _evaluate(_vehicle(coordinates=None), cache_entry=entry)

    assert decision.paused
    assert decision.confidence == Confidence.MEDIUM
    assert vehicle.confidence == Confidence.MEDIUM


def test_break_wins_over_available():
    penalty = PenaltyInfo(break_reason="Lunch")
    decision, vehicle = _evaluate(_vehicle("Available", penalty=penalty))

    assert decision.rule == "penalty"
    assert vehicle.state == VehicleState.BREAK
    assert vehicle.color == StatusColor.GRAY
    assert vehicle.reasons[0].startswith("status:available")
    assert vehicle.reasons[-1].startswith("pause:penalty")


def test_break_finish_sentinel_is_not_a_break():
    sentinel = datetime(1, 1, 1, tzinfo=timezone.utc)
    decision, vehicle = _evaluate(_vehicle(penalty=PenaltyInfo(break_finish_time=sentinel)))

    assert not decision.paused
    assert vehicle.state == VehicleState.AVAILABLE


def test_real_break_finish_time_is_a_break():
    finish = NOW + timedelta(minutes=15)
    decision, _ = _evaluate(_vehicle(penalty=PenaltyInfo(break_finish_time=finish)))

    assert decision.paused
    assert decision.rule == "penalty"


def test_penalty_reason_break_is_case_insensitive():
    decision, _ = _evaluate(_vehicle(penalty=PenaltyInfo(penalty_reason="BREAK")))

    assert decision.paused


@pytest.mark.parametrize("status_text", ["On Break", "paused by driver", "BREAK_REQUESTED"])
def test_textual_break_marker_in_status_text(status_text):
    decision, _ = _evaluate(_vehicle("Available", status_text=status_text))

    assert decision.paused
    assert decision.rule == "status_marker"


def test_word_containing_break_is_not_a_marker():
    decision, _ = _evaluate(_vehicle("Available", status_text="Breakdown recovery"))

    assert not decision.paused


def test_anomalous_queue_position_is_paused():
    decision, _ = _evaluate(_vehicle(queue_position=4), active_vehicles_in_zone=10)

    assert decision.paused
    assert decision.rule == "queue_anomalous"


def test_anomalous_queue_position_can_be_disabled():
    config = PauseDetectionConfig(anomalous_queue_position=None)
    decision, _ = _evaluate(_vehicle(queue_position=4), config=config, active_vehicles_in_zone=10)

    assert not decision.paused


@pytest.mark.parametrize("position, paused", [(8, True), (3, False), (7, False)])
def test_dynamic_queue_threshold_uses_active_zone_count(position, paused):
    decision, _ = _evaluate(_vehicle(queue_position=position, zone_id="Z1"), active_vehicles_in_zone=7)

    assert decision.paused is paused
    if paused:
        assert decision.rule == "queue_threshold"
        assert decision.confidence == Confidence.HIGH


def test_dynamic_queue_threshold_fallback_is_low_confidence():
    decision, vehicle = _evaluate(_vehicle(queue_position=9))

    assert decision.paused
    assert decision.confidence == Confidence.LOW
    assert vehicle.confidence == Confidence.LOW


def test_offline_vehicle_is_not_downgraded_by_staleness_or_queue():
    snapshot = _vehicle(None, coordinates=_gps(timedelta(hours=3)), queue_position=4)
    decision, vehicle = _evaluate(snapshot)

    assert not decision.paused
    assert vehicle.state == VehicleState.OFFLINE


def test_no_data_is_paused_only_when_source_marks_off_shift():
    snapshot = _vehicle(None, no_data_marker="off_shift")

    decision, vehicle = _evaluate(snapshot)
    assert not decision.paused
    assert vehicle.state == VehicleState.OFFLINE

    config = PauseDetectionConfig(no_data_is_off_shift=True)
    decision, vehicle = _evaluate(snapshot, config=config)
    assert decision.rule == "no_data_off_shift"
    assert vehicle.state == VehicleState.BREAK


def test_operator_override_pauses_configured_callsign():
    config = PauseDetectionConfig(forced_callsigns=frozenset({"262"}))

    decision, vehicle = _evaluate(_vehicle("Available", callsign="262"), config=config)
    assert decision.rule == "operator_override"
    assert vehicle.state == VehicleState.BREAK

    decision, _ = _evaluate(_vehicle("Available", callsign="263"), config=config)
    assert not decision.paused


def test_config_rejects_invalid_thresholds():
    with pytest.raises(ValueError):
        PauseDetectionConfig(gps_staleness=timedelta(0)).validate()
    with pytest.raises(ValueError):
        PauseDetectionConfig(dynamic_threshold_fallback=0).validate()


def test_fix_without_timestamp_falls_back_to_cached_last_seen():
    entry = CacheEntry(
        last_seen_at=NOW - timedelta(minutes=30),
        last_known_coordinates=None,
        generation=1,
        updated_at=NOW - timedelta(minutes=1),
    )
    snapshot = _vehicle(coordinates=Coordinates(lat=51.5, lng=-0.12, timestamp=None))

    decision, vehicle = _evaluate(snapshot, cache_entry=entry)

    assert decision.rule == "gps_stale"
    assert decision.confidence == Confidence.MEDIUM
    assert vehicle.state == VehicleState.BREAK


def test_placeholder_date_with_time_component_is_unset():
    finish = datetime(1, 1, 1, 5, 0, tzinfo=timezone.utc)
    decision, _ = _evaluate(_vehicle(penalty=PenaltyInfo(break_finish_time=finish)))

    assert not decision.paused
