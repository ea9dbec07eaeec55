import json

import pytest

from fleetstate.data import constraint_mapping
from fleetstate.data.constraint_mapping import EMPTY_MAPPING, load_constraint_mapping, parse_constraint_mapping


@pytest.fixture(autouse=True)
def clear_mapping_cache():
    load_constraint_mapping.cache_clear()
    yield
    load_constraint_mapping.cache_clear()


def _mapping_payload() -> dict:
    return {
        "constraintToCallsign": {
            "7": {"callsign": "262", "type": "driver", "fullName": "Sam Driver"},
            "abc": {"callsign": "999", "type": "driver"},
            "8": {"callsign": "251", "type": "vehicle"},
        },
        "vehicleConstraintToCallsign": {
            "42": {"callsign": "262", "type": "vehicle", "registration": "AB12 CDE"},
            "43": {"type": "vehicle"},
        },
    }


def test_parse_constraint_mapping_filters_entries():
    mapping = parse_constraint_mapping(_mapping_payload())

    assert mapping.driver(7).callsign == "262"
    assert mapping.driver(7).name == "Sam Driver"
    assert mapping.driver(8) is None
    assert mapping.vehicle(42).name == "AB12 CDE"
    assert mapping.vehicle(43) is None


def test_load_constraint_mapping_from_file(tmp_path):
    path = tmp_path / "reverse-constraint-mapping.json"
    path.write_text(json.dumps(_mapping_payload()), encoding="utf-8")

    mapping = load_constraint_mapping(path)

    assert mapping.vehicle(42).callsign == "262"
    assert len(mapping.drivers) == 1


def test_missing_mapping_file_yields_empty_mapping(tmp_path):
    assert load_constraint_mapping(tmp_path / "absent.json") is EMPTY_MAPPING


def test_invalid_mapping_file_yields_empty_mapping(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_constraint_mapping(path) is EMPTY_MAPPING


def test_unconfigured_mapping_uses_settings(tmp_path, monkeypatch):
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps(_mapping_payload()), encoding="utf-8")
    monkeypatch.setattr(constraint_mapping.settings, "constraint_mapping_file", path)

    assert load_constraint_mapping().driver(7).callsign == "262"
