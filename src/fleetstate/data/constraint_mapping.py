"""Constraint id to callsign mapping loaded from an exported JSON file.

The dispatch platform refers to drivers and vehicles in booking constraints by
internal numeric ids. When the live roster cannot map an id, this file (an
export of the platform's driver and vehicle lists) is the fallback.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class MappedCallsign:
    callsign: str
    name: Optional[str] = None


@dataclass(slots=True)
class ConstraintMapping:
    drivers: dict[int, MappedCallsign] = field(default_factory=dict)
    vehicles: dict[int, MappedCallsign] = field(default_factory=dict)

    def driver(self, constraint_id: int) -> Optional[MappedCallsign]:
        return self.drivers.get(constraint_id)

    def vehicle(self, constraint_id: int) -> Optional[MappedCallsign]:
        return self.vehicles.get(constraint_id)


EMPTY_MAPPING = ConstraintMapping()


def _parse_section(section: Any, expected_type: str, name_key: str) -> dict[int, MappedCallsign]:
    if not isinstance(section, Mapping):
        return {}
    parsed: dict[int, MappedCallsign] = {}
    for key, info in section.items():
        try:
            constraint_id = int(key)
        except (TypeError, ValueError):
            logger.warning(f"Skipping constraint mapping entry with non-numeric id {key!r}")
            continue
        if not isinstance(info, Mapping) or not info.get("callsign"):
            continue
        if info.get("type", expected_type) != expected_type:
            continue
        parsed[constraint_id] = MappedCallsign(callsign=str(info["callsign"]), name=info.get(name_key))
    return parsed


def parse_constraint_mapping(data: Mapping[str, Any]) -> ConstraintMapping:
    return ConstraintMapping(
        drivers=_parse_section(data.get("constraintToCallsign"), "driver", "fullName"),
        vehicles=_parse_section(data.get("vehicleConstraintToCallsign"), "vehicle", "registration"),
    )


@lru_cache(maxsize=4)
def load_constraint_mapping(source: Path | None = None) -> ConstraintMapping:
    """Load the mapping file once. A missing or unreadable file yields an empty mapping."""
    path = source or settings.constraint_mapping_file
    if path is None:
        return EMPTY_MAPPING
    if not path.exists():
        logger.warning(f"Constraint mapping file not found: {path}; constraints resolve via roster only")
        return EMPTY_MAPPING

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(f"Failed to read constraint mapping {path}: {exc}")
        return EMPTY_MAPPING

    if not isinstance(data, Mapping):
        logger.error(f"Constraint mapping {path} must contain a JSON object")
        return EMPTY_MAPPING

    mapping = parse_constraint_mapping(data)
    logger.info(
        f"Loaded constraint mapping: {len(mapping.drivers)} driver and {len(mapping.vehicles)} vehicle entries"
    )
    return mapping
