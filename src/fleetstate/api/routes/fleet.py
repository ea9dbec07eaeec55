"""API routes for fleet state polling."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from ...schemas.fleet import FleetStateResponse, SnapshotRequest
from ...services.fleet.service import FleetStateEngine
from ...services.outputs.formatter import fleet_state_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fleet", tags=["fleet"])


def _engine(request: Request) -> FleetStateEngine:
    return request.app.state.engine


@router.post("/snapshot", response_model=FleetStateResponse, status_code=status.HTTP_200_OK)
def process_snapshot(payload: SnapshotRequest, request: Request) -> FleetStateResponse:
    """Classify one poll of vehicles and resolve its bookings.

    The result is also published as the latest fleet state unless a newer
    poll has already been published, in which case it is returned flagged
    ``stale``.
    """
    try:
        state = _engine(request).process_snapshot(payload.vehicles, payload.bookings, now=payload.now)
    except ValueError as exc:
        logger.warning(f"Rejected fleet snapshot: {exc}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return fleet_state_to_response(state)


@router.get("/state", response_model=FleetStateResponse, status_code=status.HTTP_200_OK)
def latest_state(request: Request) -> FleetStateResponse:
    state = _engine(request).latest()
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No fleet snapshot has been processed yet.")
    return fleet_state_to_response(state)


@router.get("/vehicles/{callsign}", status_code=status.HTTP_200_OK)
def vehicle_state(callsign: str, request: Request) -> dict:
    state = _engine(request).latest()
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No fleet snapshot has been processed yet.")
    for vehicle in fleet_state_to_response(state).vehicles:
        if vehicle.callsign == callsign:
            return vehicle.model_dump(mode="json", by_alias=True)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Vehicle '{callsign}' not found.")
