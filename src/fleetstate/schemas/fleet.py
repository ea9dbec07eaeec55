"""Pydantic request/response models for fleet state endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SnapshotRequest(_CamelModel):
    # Left untyped so a malformed payload reaches the engine and is rejected there with a clear message
    vehicles: Any = Field(..., description="Vehicle records as delivered by the dispatch platform.")
    bookings: Any = Field(default_factory=list, description="Booking records as delivered by the dispatch platform.")
    now: Optional[datetime] = Field(default=None, description="Evaluation time; defaults to the server clock.")


class CoordinatesModel(_CamelModel):
    lat: float
    lng: float
    timestamp: Optional[datetime] = None


class ClassifiedVehicleModel(_CamelModel):
    callsign: str
    state: str
    color: str
    confidence: str
    reasons: list[str]
    raw_status: Optional[str] = None
    zone_id: Optional[str] = None
    queue_position: Optional[int] = None
    coordinates: Optional[CoordinatesModel] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    driver_callsign: Optional[str] = None
    driver_name: Optional[str] = None
    pause_rule: Optional[str] = None


class ResolvedBookingModel(_CamelModel):
    booking_id: str
    assigned_callsign: Optional[str] = None
    assignment_tier: str
    assigned_name: Optional[str] = None
    has_constraint_data: bool = False
    is_assigned: bool
    reasons: list[str]


class FleetStateResponse(_CamelModel):
    poll_sequence: int
    generated_at: datetime
    stale: bool = False
    vehicles: list[ClassifiedVehicleModel]
    bookings: list[ResolvedBookingModel]
    state_counts: dict[str, int]
    color_counts: dict[str, int]
    assigned_booking_ids: list[str]
    unassigned_booking_ids: list[str]
