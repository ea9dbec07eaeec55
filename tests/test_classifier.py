import logging

import pytest

from fleetstate.models.domain import Confidence, StatusColor, VehicleSnapshot, VehicleState
from fleetstate.services.classification import classify
from fleetstate.services.classification.classifier import normalize_status


def _vehicle(raw_status, callsign: str = "101", **kwargs) -> VehicleSnapshot:
    return VehicleSnapshot(callsign=callsign, raw_status=raw_status, **kwargs)


@pytest.mark.parametrize(
    "raw_status, expected_state, expected_color",
    [
        ("Available", VehicleState.AVAILABLE, StatusColor.GREEN),
        ("Clear", VehicleState.AVAILABLE, StatusColor.GREEN),
        ("AvailableNotInQueue", VehicleState.AVAILABLE, StatusColor.GREEN),
        ("Busy", VehicleState.BUSY, StatusColor.RED),
        ("BusyMeterOnFromMeterOffAccount", VehicleState.BUSY, StatusColor.RED),
        ("Dispatched", VehicleState.BUSY, StatusColor.RED),
        ("JobOffered", VehicleState.BUSY, StatusColor.RED),
        ("BusyAtPickup", VehicleState.BUSY, StatusColor.RED),
        ("BusyGoingToPickup", VehicleState.EN_ROUTE, StatusColor.YELLOW),
        ("NotAvailable", VehicleState.BREAK, StatusColor.GRAY),
        ("OnBreak", VehicleState.BREAK, StatusColor.GRAY),
        ("Suspended", VehicleState.BREAK, StatusColor.GRAY),
        ("Offline", VehicleState.OFFLINE, StatusColor.GRAY),
    ],
)
def test_classify_platform_vocabulary(raw_status, expected_state, expected_color):
    result = classify(_vehicle(raw_status))

    assert result.state == expected_state
    assert result.color == expected_color
    assert result.confidence == Confidence.HIGH
    assert raw_status in result.reasons[0]


def test_normalize_status_ignores_case_and_separators():
    assert normalize_status("Busy Going-To_Pickup") == normalize_status("busygoingtopickup")


def test_classification_is_idempotent():
    snapshot = _vehicle("BusyMeterOff", queue_position=2, zone_id="Z1")

    assert classify(snapshot) == classify(snapshot)


@pytest.mark.parametrize("raw_status", [None, "", "   "])
def test_missing_status_data_is_offline_with_low_confidence(raw_status):
    result = classify(_vehicle(raw_status))

    assert result.state == VehicleState.OFFLINE
    assert result.color == StatusColor.GRAY
    assert result.confidence == Confidence.LOW
    assert result.reasons == ("status:no-data",)


def test_unrecognized_status_is_unknown_and_logged(caplog):
    with caplog.at_level(logging.WARNING):
        result = classify(_vehicle("Teleporting", callsign="777"))

    assert result.state == VehicleState.UNKNOWN
    assert result.color == StatusColor.GRAY
    assert result.confidence == Confidence.LOW
    assert "Teleporting" in caplog.text
    assert "777" in caplog.text
