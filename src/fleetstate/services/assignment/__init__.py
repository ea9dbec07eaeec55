"""Booking assignment resolution."""

from .policy import ResolverConfig
from .resolver import AssignmentTierRule, resolve
from .roster import FleetRoster

__all__ = ["ResolverConfig", "AssignmentTierRule", "resolve", "FleetRoster"]
