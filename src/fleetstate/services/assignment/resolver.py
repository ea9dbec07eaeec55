"""Resolve which vehicle is serving a booking.

The platform's own assignment field is frequently empty, so resolution walks
a cascade of progressively weaker signals and stops at the first tier that
names a vehicle:

1. Direct      - the booking names a driver or vehicle outright.
2. Constraint  - the first requested vehicle, then the first requested
                 driver, mapped through the live roster.
3. Suggested   - an external cross-reference suggestion, if its score meets
                 the configured minimum and it names a plausible vehicle.
4. Unresolved  - nothing applies.

A booking whose constraints could not be resolved still reports the
``ResolvedConstraint`` tier with no callsign: the raw constraint is itself
evidence that the booking has been allocated.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from ...models.domain import AssignmentTier, BookingRecord, DirectReference, ResolvedBooking
from .policy import ResolverConfig
from .roster import FleetRoster

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TierOutcome:
    matched: bool
    reason: str
    callsign: Optional[str] = None
    name: Optional[str] = None


class AssignmentTierRule(ABC):
    """Contract for one stage of the assignment cascade."""

    tier: AssignmentTier

    @abstractmethod
    def attempt(self, booking: BookingRecord, roster: FleetRoster, config: ResolverConfig) -> Optional[TierOutcome]:
        """Return an outcome, or ``None`` when the booking carries no signal for this tier."""
        raise NotImplementedError


class DirectTier(AssignmentTierRule):
    tier = AssignmentTier.DIRECT

    def attempt(self, booking: BookingRecord, roster: FleetRoster, config: ResolverConfig) -> Optional[TierOutcome]:
        vehicle_ref, driver_ref = booking.direct_vehicle, booking.direct_driver
        if vehicle_ref is None and driver_ref is None:
            return None

        callsign = self._vehicle_callsign(vehicle_ref, roster) or self._driver_callsign(driver_ref, roster)
        name = driver_ref.name if driver_ref else None
        if name is None and callsign:
            vehicle = roster.find(callsign)
            name = vehicle.driver_name if vehicle else None
        described = ", ".join(
            part
            for part in (
                f"vehicle={self._describe(vehicle_ref)}" if vehicle_ref else "",
                f"driver={self._describe(driver_ref)}" if driver_ref else "",
            )
            if part
        )
        return TierOutcome(matched=True, reason=f"direct:{described}", callsign=callsign, name=name)

    @staticmethod
    def _describe(ref: DirectReference) -> str:
        return ref.callsign or (str(ref.id) if ref.id is not None else None) or ref.name or "?"

    @staticmethod
    def _vehicle_callsign(ref: Optional[DirectReference], roster: FleetRoster) -> Optional[str]:
        if ref is None:
            return None
        if ref.callsign:
            return ref.callsign
        if ref.id is not None:
            match = roster.resolve_vehicle_id(ref.id, require_plausible=False)
            if match:
                return match.callsign
            mapped = roster.mapping.vehicle(ref.id)
            if mapped:
                return mapped.callsign
        return None

    @staticmethod
    def _driver_callsign(ref: Optional[DirectReference], roster: FleetRoster) -> Optional[str]:
        if ref is None:
            return None
        if ref.callsign:
            vehicle = roster.find(ref.callsign)
            return vehicle.callsign if vehicle else ref.callsign
        if ref.id is not None:
            match = roster.resolve_driver_id(ref.id, require_plausible=False)
            if match:
                return match.callsign
            mapped = roster.mapping.driver(ref.id)
            if mapped:
                return mapped.callsign
        return None


class ConstraintTier(AssignmentTierRule):
    tier = AssignmentTier.RESOLVED_CONSTRAINT

    def attempt(self, booking: BookingRecord, roster: FleetRoster, config: ResolverConfig) -> Optional[TierOutcome]:
        constraints = booking.constraints
        if not constraints.has_requests:
            return None

        # A vehicle implies its driver but not the other way round
        if constraints.requested_vehicles:
            vehicle_id = constraints.requested_vehicles[0]
            match = roster.resolve_vehicle_id(vehicle_id)
            if match:
                return TierOutcome(
                    matched=True,
                    reason=f"constraint:vehicle {vehicle_id} -> {match.callsign} ({match.source})",
                    callsign=match.callsign,
                    name=match.name,
                )

        if constraints.requested_drivers:
            driver_id = constraints.requested_drivers[0]
            match = roster.resolve_driver_id(driver_id)
            if match:
                return TierOutcome(
                    matched=True,
                    reason=f"constraint:driver {driver_id} -> {match.callsign} ({match.source})",
                    callsign=match.callsign,
                    name=match.name,
                )

        return TierOutcome(
            matched=False,
            reason=(
                "constraint:unresolved "
                f"vehicles={constraints.requested_vehicles[:1]} drivers={constraints.requested_drivers[:1]}"
            ),
        )


class SuggestionTier(AssignmentTierRule):
    tier = AssignmentTier.SUGGESTED

    def attempt(self, booking: BookingRecord, roster: FleetRoster, config: ResolverConfig) -> Optional[TierOutcome]:
        suggestion = booking.suggestion
        if suggestion is None:
            return None

        if suggestion.confidence_score < config.suggestion_min_confidence:
            return TierOutcome(
                matched=False,
                reason=(
                    f"suggestion:dropped {suggestion.callsign} score {suggestion.confidence_score:g}"
                    f" < {config.suggestion_min_confidence:g}"
                ),
            )

        vehicle = roster.find(suggestion.callsign)
        if not roster.is_plausible(vehicle):
            return TierOutcome(matched=False, reason=f"suggestion:dropped {suggestion.callsign} not active on roster")

        constraints = booking.constraints
        if (vehicle.vehicle_id is not None and vehicle.vehicle_id in constraints.forbidden_vehicles) or (
            vehicle.driver_id is not None and vehicle.driver_id in constraints.forbidden_drivers
        ):
            return TierOutcome(matched=False, reason=f"suggestion:dropped {suggestion.callsign} is forbidden")

        source = f" via {suggestion.source}" if suggestion.source else ""
        return TierOutcome(
            matched=True,
            reason=f"suggestion:{vehicle.callsign} score {suggestion.confidence_score:g}{source}",
            callsign=vehicle.callsign,
            name=suggestion.name or vehicle.driver_name,
        )


DEFAULT_TIERS: tuple[AssignmentTierRule, ...] = (DirectTier(), ConstraintTier(), SuggestionTier())


def resolve(
    booking: BookingRecord,
    roster: FleetRoster,
    config: ResolverConfig | None = None,
    tiers: Sequence[AssignmentTierRule] = DEFAULT_TIERS,
) -> ResolvedBooking:
    config = config or ResolverConfig()
    has_constraints = booking.constraints.has_requests
    reasons: list[str] = []

    for rule in tiers:
        outcome = rule.attempt(booking, roster, config)
        if outcome is None:
            continue
        reasons.append(outcome.reason)
        if outcome.matched:
            return ResolvedBooking(
                booking_id=booking.id,
                assigned_callsign=outcome.callsign,
                assignment_tier=rule.tier,
                assigned_name=outcome.name,
                has_constraint_data=has_constraints,
                reasons=reasons,
            )

    tier = AssignmentTier.RESOLVED_CONSTRAINT if has_constraints else AssignmentTier.UNRESOLVED
    if has_constraints:
        logger.debug(f"Booking {booking.id}: constraints present but no active vehicle matched")
    return ResolvedBooking(
        booking_id=booking.id,
        assigned_callsign=None,
        assignment_tier=tier,
        has_constraint_data=has_constraints,
        reasons=reasons,
    )
