"""Serialize fleet state results into API response models."""

from __future__ import annotations

from ...models.domain import ClassifiedVehicle, FleetState, ResolvedBooking
from ...schemas.fleet import (
    ClassifiedVehicleModel,
    CoordinatesModel,
    FleetStateResponse,
    ResolvedBookingModel,
)


def vehicle_to_model(vehicle: ClassifiedVehicle) -> ClassifiedVehicleModel:
    coordinates = vehicle.coordinates
    return ClassifiedVehicleModel(
        callsign=vehicle.callsign,
        state=vehicle.state.value,
        color=vehicle.color.value,
        confidence=vehicle.confidence.value,
        reasons=list(vehicle.reasons),
        raw_status=vehicle.raw_status,
        zone_id=vehicle.zone_id,
        queue_position=vehicle.queue_position,
        coordinates=(
            CoordinatesModel(lat=coordinates.lat, lng=coordinates.lng, timestamp=coordinates.timestamp)
            if coordinates
            else None
        ),
        vehicle_id=vehicle.vehicle_id,
        driver_id=vehicle.driver_id,
        driver_callsign=vehicle.driver_callsign,
        driver_name=vehicle.driver_name,
        pause_rule=vehicle.pause_rule,
    )


def booking_to_model(booking: ResolvedBooking) -> ResolvedBookingModel:
    return ResolvedBookingModel(
        booking_id=booking.booking_id,
        assigned_callsign=booking.assigned_callsign,
        assignment_tier=booking.assignment_tier.value,
        assigned_name=booking.assigned_name,
        has_constraint_data=booking.has_constraint_data,
        is_assigned=booking.is_assigned,
        reasons=list(booking.reasons),
    )


def fleet_state_to_response(state: FleetState) -> FleetStateResponse:
    return FleetStateResponse(
        poll_sequence=state.poll_sequence,
        generated_at=state.generated_at,
        stale=state.stale,
        vehicles=[vehicle_to_model(vehicle) for vehicle in state.vehicles],
        bookings=[booking_to_model(booking) for booking in state.bookings],
        state_counts=dict(state.state_counts),
        color_counts=dict(state.color_counts),
        assigned_booking_ids=list(state.assigned_booking_ids),
        unassigned_booking_ids=list(state.unassigned_booking_ids),
    )
