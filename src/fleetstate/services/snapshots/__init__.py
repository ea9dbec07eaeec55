"""Snapshot parsing helpers."""

from .parser import (
    SnapshotFormatError,
    parse_booking,
    parse_bookings,
    parse_vehicle,
    parse_vehicles,
)

__all__ = [
    "SnapshotFormatError",
    "parse_vehicle",
    "parse_vehicles",
    "parse_booking",
    "parse_bookings",
]
