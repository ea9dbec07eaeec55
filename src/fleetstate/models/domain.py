"""Domain models for vehicle telemetry, bookings and their resolved forms."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class VehicleState(str, Enum):
    AVAILABLE = "Available"
    BUSY = "Busy"
    EN_ROUTE = "EnRoute"
    BREAK = "Break"
    OFFLINE = "Offline"
    UNKNOWN = "Unknown"


class StatusColor(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    GRAY = "gray"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AssignmentTier(str, Enum):
    DIRECT = "Direct"
    RESOLVED_CONSTRAINT = "ResolvedConstraint"
    SUGGESTED = "Suggested"
    UNRESOLVED = "Unresolved"


@dataclass(slots=True, frozen=True)
class Coordinates:
    lat: float
    lng: float
    timestamp: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class PenaltyInfo:
    """Suspension-like marker attached to a vehicle's status by the platform."""

    break_reason: Optional[str] = None
    break_finish_time: Optional[datetime] = None
    penalty_reason: Optional[str] = None


@dataclass(slots=True, frozen=True)
class ShiftInfo:
    started: Optional[datetime] = None
    duration_hours: float = 0.0
    total_jobs: int = 0
    cash_jobs: int = 0
    account_jobs: int = 0


@dataclass(slots=True)
class VehicleSnapshot:
    """One vehicle as reported by a single poll of the dispatch platform.

    ``raw_status`` is ``None`` when the platform sent no status data at all,
    which is distinct from an unrecognised status string.
    """

    callsign: str
    raw_status: Optional[str] = None
    status_text: Optional[str] = None
    queue_position: Optional[int] = None
    penalty: Optional[PenaltyInfo] = None
    coordinates: Optional[Coordinates] = None
    shift: Optional[ShiftInfo] = None
    zone_id: Optional[str] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    driver_callsign: Optional[str] = None
    driver_name: Optional[str] = None
    no_data_marker: Optional[str] = None

    @property
    def has_status_data(self) -> bool:
        return bool(self.raw_status and self.raw_status.strip())


@dataclass(slots=True)
class ClassifiedVehicle:
    callsign: str
    state: VehicleState
    color: StatusColor
    confidence: Confidence
    reasons: list[str] = field(default_factory=list)
    raw_status: Optional[str] = None
    zone_id: Optional[str] = None
    queue_position: Optional[int] = None
    coordinates: Optional[Coordinates] = None
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    driver_callsign: Optional[str] = None
    driver_name: Optional[str] = None
    pause_rule: Optional[str] = None


@dataclass(slots=True, frozen=True)
class DirectReference:
    """A driver or vehicle the platform has named directly on a booking."""

    id: Optional[int] = None
    callsign: Optional[str] = None
    name: Optional[str] = None


@dataclass(slots=True)
class BookingConstraints:
    requested_drivers: list[int] = field(default_factory=list)
    requested_vehicles: list[int] = field(default_factory=list)
    forbidden_drivers: list[int] = field(default_factory=list)
    forbidden_vehicles: list[int] = field(default_factory=list)

    @property
    def has_requests(self) -> bool:
        return bool(self.requested_vehicles or self.requested_drivers)


@dataclass(slots=True, frozen=True)
class AssignmentSuggestion:
    callsign: str
    name: Optional[str] = None
    source: Optional[str] = None
    confidence_score: float = 0.0


@dataclass(slots=True)
class BookingRecord:
    id: str
    direct_driver: Optional[DirectReference] = None
    direct_vehicle: Optional[DirectReference] = None
    constraints: BookingConstraints = field(default_factory=BookingConstraints)
    suggestion: Optional[AssignmentSuggestion] = None


@dataclass(slots=True)
class ResolvedBooking:
    booking_id: str
    assigned_callsign: Optional[str]
    assignment_tier: AssignmentTier
    assigned_name: Optional[str] = None
    has_constraint_data: bool = False
    reasons: list[str] = field(default_factory=list)

    @property
    def is_assigned(self) -> bool:
        """Whether downstream grouping should list the booking as allocated.

        Raw constraint data counts as evidence of allocation even when no
        callsign could be resolved from it.
        """
        if self.assignment_tier in (AssignmentTier.DIRECT, AssignmentTier.RESOLVED_CONSTRAINT):
            return True
        return self.has_constraint_data


@dataclass(slots=True)
class FleetState:
    """Aggregated result of one poll."""

    poll_sequence: int
    generated_at: datetime
    vehicles: list[ClassifiedVehicle]
    bookings: list[ResolvedBooking]
    state_counts: dict[str, int]
    color_counts: dict[str, int]
    assigned_booking_ids: list[str]
    unassigned_booking_ids: list[str]
    stale: bool = False
