"""Read-only view of the classified fleet used to validate booking assignments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...data.constraint_mapping import EMPTY_MAPPING, ConstraintMapping
from ...models.domain import ClassifiedVehicle, VehicleState


@dataclass(slots=True, frozen=True)
class RosterMatch:
    callsign: str
    name: Optional[str]
    source: str


class FleetRoster:
    """Callsign and id lookups over one poll's fully classified fleet."""

    def __init__(self, vehicles: Iterable[ClassifiedVehicle], mapping: ConstraintMapping | None = None) -> None:
        self.mapping = mapping or EMPTY_MAPPING
        self._by_callsign: dict[str, ClassifiedVehicle] = {}
        self._by_driver_callsign: dict[str, ClassifiedVehicle] = {}
        self._by_vehicle_id: dict[int, ClassifiedVehicle] = {}
        self._by_driver_id: dict[int, ClassifiedVehicle] = {}
        for vehicle in vehicles:
            self._by_callsign.setdefault(vehicle.callsign, vehicle)
            if vehicle.driver_callsign:
                self._by_driver_callsign.setdefault(vehicle.driver_callsign, vehicle)
            if vehicle.vehicle_id is not None:
                self._by_vehicle_id.setdefault(vehicle.vehicle_id, vehicle)
            if vehicle.driver_id is not None:
                self._by_driver_id.setdefault(vehicle.driver_id, vehicle)

    @staticmethod
    def is_plausible(vehicle: Optional[ClassifiedVehicle]) -> bool:
        """A vehicle can serve a booking only if it is on the roster and not Offline."""
        return vehicle is not None and vehicle.state != VehicleState.OFFLINE

    def find(self, callsign: Optional[str]) -> Optional[ClassifiedVehicle]:
        if not callsign:
            return None
        return self._by_callsign.get(callsign) or self._by_driver_callsign.get(callsign)

    def by_vehicle_id(self, vehicle_id: int) -> Optional[ClassifiedVehicle]:
        return self._by_vehicle_id.get(vehicle_id)

    def by_driver_id(self, driver_id: int) -> Optional[ClassifiedVehicle]:
        return self._by_driver_id.get(driver_id)

    def _match(self, vehicle: ClassifiedVehicle, source: str) -> RosterMatch:
        return RosterMatch(callsign=vehicle.callsign, name=vehicle.driver_name, source=source)

    def resolve_vehicle_id(self, vehicle_id: int, *, require_plausible: bool = True) -> Optional[RosterMatch]:
        """Map a vehicle constraint id to a callsign on the roster."""
        candidates = (
            (self.by_vehicle_id(vehicle_id), "roster:vehicle_id"),
            (self._from_mapping(self.mapping.vehicle(vehicle_id)), "mapping:vehicle"),
            (self.find(str(vehicle_id)), "roster:callsign"),
        )
        return self._first_match(candidates, require_plausible)

    def resolve_driver_id(self, driver_id: int, *, require_plausible: bool = True) -> Optional[RosterMatch]:
        """Map a driver constraint id to the callsign of the vehicle that driver is in."""
        candidates = (
            (self.by_driver_id(driver_id), "roster:driver_id"),
            (self._from_mapping(self.mapping.driver(driver_id)), "mapping:driver"),
        )
        return self._first_match(candidates, require_plausible)

    def _from_mapping(self, mapped) -> Optional[ClassifiedVehicle]:
        if mapped is None:
            return None
        return self.find(mapped.callsign)

    def _first_match(self, candidates, require_plausible: bool) -> Optional[RosterMatch]:
        for vehicle, source in candidates:
            if vehicle is None:
                continue
            if require_plausible and not self.is_plausible(vehicle):
                continue
            return self._match(vehicle, source)
        return None
