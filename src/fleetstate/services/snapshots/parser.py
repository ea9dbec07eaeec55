"""Convert deserialized upstream JSON into snapshot domain records.

Secondary signals (penalty, coordinates, shift, suggestion) that arrive in an
unexpected shape are dropped rather than failing the record. Only a top-level
payload that is not a list fails the whole batch.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ...models.domain import (
    AssignmentSuggestion,
    BookingConstraints,
    BookingRecord,
    Coordinates,
    DirectReference,
    PenaltyInfo,
    ShiftInfo,
    VehicleSnapshot,
)
from ...schemas.upstream import CoordinatesPayload, PenaltyPayload, ShiftPayload, SuggestionPayload

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class SnapshotFormatError(ValueError):
    """Raised when a top-level snapshot payload is not a JSON array."""


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        # Placeholder dates at the edge of the calendar (year 1) with an offset
        return value.replace(tzinfo=timezone.utc)


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_list(value: Any) -> list[int]:
    if not isinstance(value, (list, tuple)):
        return []
    ids: list[int] = []
    for item in value:
        parsed = _optional_int(item)
        if parsed is not None:
            ids.append(parsed)
    return ids


def _validate_signal(model: type[PayloadT], value: Any, *, label: str, owner: str) -> Optional[PayloadT]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        logger.debug(f"Ignoring malformed {label} for {owner}: expected object, got {type(value).__name__}")
        return None
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        logger.debug(f"Ignoring malformed {label} for {owner}: {exc.error_count()} validation error(s)")
        return None


def _parse_penalty(value: Any, owner: str) -> Optional[PenaltyInfo]:
    payload = _validate_signal(PenaltyPayload, value, label="penalty", owner=owner)
    if payload is None:
        return None
    finish = payload.break_finish_time
    # The unset placeholder stays on its wall-clock date regardless of offset
    if finish is not None and finish.replace(tzinfo=None) == datetime.min:
        finish = datetime.min.replace(tzinfo=timezone.utc)
    return PenaltyInfo(
        break_reason=payload.break_reason,
        break_finish_time=ensure_utc(finish),
        penalty_reason=payload.penalty_reason,
    )


def _parse_coordinates(raw: Mapping[str, Any], owner: str) -> Optional[Coordinates]:
    value = _first_present(raw, "coordinates", "gps", "location")
    if isinstance(value, Mapping):
        # GPS feeds wrap the fix in a nested ``location`` object
        nested = value.get("location")
        if isinstance(nested, Mapping):
            value = {**nested, **{k: v for k, v in value.items() if k != "location"}}
        if value.get("isEmpty") is True:
            return None
    payload = _validate_signal(CoordinatesPayload, value, label="coordinates", owner=owner)
    if payload is None:
        return None
    return Coordinates(lat=payload.lat, lng=payload.lng, timestamp=ensure_utc(payload.timestamp))


def _parse_shift(value: Any, owner: str) -> Optional[ShiftInfo]:
    payload = _validate_signal(ShiftPayload, value, label="shift", owner=owner)
    if payload is None:
        return None
    return ShiftInfo(
        started=ensure_utc(payload.started),
        duration_hours=payload.duration_hours,
        total_jobs=payload.total_jobs,
        cash_jobs=payload.cash_jobs,
        account_jobs=payload.account_jobs,
    )


def parse_vehicle(raw: Any) -> Optional[VehicleSnapshot]:
    """Build a :class:`VehicleSnapshot` from one upstream vehicle object.

    Returns ``None`` when the record has no usable callsign.
    """
    if not isinstance(raw, Mapping):
        logger.warning(f"Skipping vehicle record of type {type(raw).__name__}")
        return None

    callsign = _optional_str(raw.get("callsign"))
    if not callsign:
        logger.warning(f"Skipping vehicle record without callsign: id={raw.get('id')!r}")
        return None

    # Status fields may be inlined or nested under ``statusData``
    status_data = raw.get("statusData")
    source: Mapping[str, Any] = status_data if isinstance(status_data, Mapping) else raw

    raw_status = _optional_str(_first_present(source, "rawStatus", "vehicleStatusType"))
    zone_id = _first_present(source, "zoneId", "zone_id")

    return VehicleSnapshot(
        callsign=callsign,
        raw_status=raw_status,
        status_text=_optional_str(source.get("statusText")),
        queue_position=_optional_int(source.get("queuePosition")),
        penalty=_parse_penalty(source.get("penalty"), callsign),
        coordinates=_parse_coordinates(raw, callsign),
        shift=_parse_shift(raw.get("shift"), callsign),
        zone_id=_optional_str(zone_id),
        vehicle_id=_optional_int(_first_present(raw, "vehicleId", "id")),
        driver_id=_optional_int(raw.get("driverId")),
        driver_callsign=_optional_str(raw.get("driverCallsign")),
        driver_name=_optional_str(raw.get("driverName")),
        no_data_marker=_optional_str(_first_present(raw, "noDataMarker", "noDataReason")),
    )


def _parse_direct_reference(value: Any) -> Optional[DirectReference]:
    if not isinstance(value, Mapping):
        return None
    reference = DirectReference(
        id=_optional_int(value.get("id")),
        callsign=_optional_str(value.get("callsign")),
        name=_optional_str(_first_present(value, "name", "fullName", "registration")),
    )
    if reference.id is None and reference.callsign is None and reference.name is None:
        return None
    return reference


def _parse_constraints(raw: Mapping[str, Any]) -> BookingConstraints:
    flat = raw.get("constraints") if isinstance(raw.get("constraints"), Mapping) else {}
    driver = raw.get("driverConstraints") if isinstance(raw.get("driverConstraints"), Mapping) else {}
    vehicle = raw.get("vehicleConstraints") if isinstance(raw.get("vehicleConstraints"), Mapping) else {}

    def pick(key: str, nested: Mapping[str, Any]) -> list[int]:
        for source in (flat, nested, raw):
            ids = _int_list(source.get(key))
            if ids:
                return ids
        return []

    return BookingConstraints(
        requested_drivers=pick("requestedDrivers", driver),
        requested_vehicles=pick("requestedVehicles", vehicle),
        forbidden_drivers=pick("forbiddenDrivers", driver),
        forbidden_vehicles=pick("forbiddenVehicles", vehicle),
    )


def _parse_suggestion(raw: Mapping[str, Any], owner: str) -> Optional[AssignmentSuggestion]:
    value = raw.get("suggestion")
    if value is None:
        # Flat cross-reference fields attached by the booking search layer
        callsign = _first_present(raw, "suggestedVehicleCallsign", "suggestedDriverCallsign")
        if callsign is None:
            return None
        value = {
            "callsign": callsign,
            "name": raw.get("suggestedDriverName"),
            "source": raw.get("suggestionSource"),
            "confidenceScore": _first_present(raw, "suggestionConfidence", "suggestionOpacity") or 0.0,
        }
    if isinstance(value, Mapping) and value.get("callsign") is not None:
        value = {**value, "callsign": str(value["callsign"])}
    payload = _validate_signal(SuggestionPayload, value, label="suggestion", owner=owner)
    if payload is None:
        return None
    return AssignmentSuggestion(
        callsign=payload.callsign,
        name=payload.name,
        source=payload.source,
        confidence_score=payload.confidence_score,
    )


def parse_booking(raw: Any) -> Optional[BookingRecord]:
    if not isinstance(raw, Mapping):
        logger.warning(f"Skipping booking record of type {type(raw).__name__}")
        return None

    booking_id = _optional_str(_first_present(raw, "id", "bookingId"))
    if not booking_id:
        logger.warning("Skipping booking record without id")
        return None

    return BookingRecord(
        id=booking_id,
        direct_driver=_parse_direct_reference(_first_present(raw, "directDriver", "driver")),
        direct_vehicle=_parse_direct_reference(_first_present(raw, "directVehicle", "vehicle")),
        constraints=_parse_constraints(raw),
        suggestion=_parse_suggestion(raw, booking_id),
    )


def _ensure_list(payload: Any, label: str) -> list[Any]:
    if not isinstance(payload, list):
        raise SnapshotFormatError(f"{label} payload must be a JSON array, got {type(payload).__name__}.")
    return payload


def _collect(records: Iterable[Any], parse) -> list:
    parsed = []
    for record in records:
        item = parse(record)
        if item is not None:
            parsed.append(item)
    return parsed


def parse_vehicles(payload: Any) -> list[VehicleSnapshot]:
    return _collect(_ensure_list(payload, "Vehicle"), parse_vehicle)


def parse_bookings(payload: Any) -> list[BookingRecord]:
    return _collect(_ensure_list(payload, "Booking"), parse_booking)
