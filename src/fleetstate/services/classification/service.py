"""Combine status classification and pause detection into final vehicle states."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Sequence

from ...models.domain import ClassifiedVehicle, StatusColor, VehicleSnapshot, VehicleState
from .classifier import Classification
from .pause import PauseDecision


def to_classified_vehicle(snapshot: VehicleSnapshot, classification: Classification) -> ClassifiedVehicle:
    return ClassifiedVehicle(
        callsign=snapshot.callsign,
        state=classification.state,
        color=classification.color,
        confidence=classification.confidence,
        reasons=list(classification.reasons),
        raw_status=snapshot.raw_status,
        zone_id=snapshot.zone_id,
        queue_position=snapshot.queue_position,
        coordinates=snapshot.coordinates,
        vehicle_id=snapshot.vehicle_id,
        driver_id=snapshot.driver_id,
        driver_callsign=snapshot.driver_callsign,
        driver_name=snapshot.driver_name,
    )


def apply_pause(vehicle: ClassifiedVehicle, decision: PauseDecision) -> ClassifiedVehicle:
    """Override to Break/gray when a pause rule fired. Break always wins."""
    if not decision.paused:
        return vehicle
    return replace(
        vehicle,
        state=VehicleState.BREAK,
        color=StatusColor.GRAY,
        confidence=decision.confidence,
        reasons=[*vehicle.reasons, decision.reason or f"pause:{decision.rule}"],
        pause_rule=decision.rule,
    )


def count_active_by_zone(
    snapshots: Sequence[VehicleSnapshot],
    classifications: Sequence[Classification],
) -> dict[str, int]:
    """Count non-Offline vehicles per zone; vehicles without a zone are not counted."""
    counts: Counter[str] = Counter()
    for snapshot, classification in zip(snapshots, classifications):
        if snapshot.zone_id is None or classification.state == VehicleState.OFFLINE:
            continue
        counts[snapshot.zone_id] += 1
    return dict(counts)
