"""Poll engine: classify the fleet, then resolve bookings against it."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from ...config import Settings, settings as default_settings
from ...data.constraint_mapping import ConstraintMapping, load_constraint_mapping
from ...models.domain import (
    BookingRecord,
    ClassifiedVehicle,
    FleetState,
    ResolvedBooking,
    StatusColor,
    VehicleSnapshot,
    VehicleState,
)
from ..assignment import FleetRoster, ResolverConfig, resolve
from ..classification import (
    PauseContext,
    PauseDetectionConfig,
    apply_pause,
    classify,
    count_active_by_zone,
    detect_pause,
    to_classified_vehicle,
)
from ..snapshots import parse_bookings, parse_vehicles
from ..snapshots.parser import ensure_utc
from .cache import VehicleStateCache

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FleetStateEngine:
    """Runs one synchronous classification and resolution pass per poll.

    The vehicle state cache is the only state shared between polls. Every
    vehicle is classified (pause overrides included) before any booking is
    resolved, so resolution always sees the final fleet state of its own poll.
    """

    def __init__(
        self,
        cache: VehicleStateCache | None = None,
        pause_config: PauseDetectionConfig | None = None,
        resolver_config: ResolverConfig | None = None,
        mapping: ConstraintMapping | None = None,
        max_workers: int = 1,
        cache_eviction: timedelta | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.cache = cache or VehicleStateCache()
        self.pause_config = pause_config or PauseDetectionConfig()
        self.resolver_config = resolver_config or ResolverConfig()
        self.pause_config.validate()
        self.resolver_config.validate()
        self.mapping = mapping
        self.max_workers = max_workers
        self.cache_eviction = cache_eviction
        self._publish_lock = Lock()
        self._latest: Optional[FleetState] = None

    def begin_poll(self) -> int:
        """Reserve the next poll sequence number, e.g. when an upstream fetch starts."""
        return self.cache.begin_poll()

    def latest(self) -> Optional[FleetState]:
        """Most recent non-stale result, or ``None`` before the first successful poll."""
        with self._publish_lock:
            return self._latest

    def _map(self, func: Callable[[T], R], items: Sequence[T]) -> list[R]:
        if self.max_workers == 1 or len(items) < 2:
            return [func(item) for item in items]
        # Executor.map yields results in submission order
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(func, items))

    def process_snapshot(
        self,
        vehicles: Any,
        bookings: Any = (),
        now: datetime | None = None,
        sequence: int | None = None,
    ) -> FleetState:
        """Process one poll of raw upstream payloads.

        ``vehicles`` and ``bookings`` are the decoded JSON arrays from the
        dispatch platform. A non-list payload raises ``SnapshotFormatError``
        and leaves :meth:`latest` untouched.
        """
        if isinstance(bookings, tuple):
            bookings = list(bookings)
        snapshots = parse_vehicles(vehicles)
        records = parse_bookings(bookings)
        return self.process_records(snapshots, records, now=now, sequence=sequence)

    def process_records(
        self,
        snapshots: Sequence[VehicleSnapshot],
        records: Sequence[BookingRecord],
        now: datetime | None = None,
        sequence: int | None = None,
    ) -> FleetState:
        now = ensure_utc(now) or datetime.now(timezone.utc)
        sequence = sequence if sequence is not None else self.begin_poll()

        vehicles = self._classify_fleet(snapshots, now, sequence)
        roster = FleetRoster(vehicles, self._mapping())
        resolved = self._map(lambda booking: resolve(booking, roster, self.resolver_config), list(records))

        state = self._aggregate(sequence, now, vehicles, resolved)
        self._publish(state)
        logger.info(
            f"Poll {sequence}: {len(vehicles)} vehicles {state.state_counts}, "
            f"{len(state.assigned_booking_ids)}/{len(resolved)} bookings assigned"
            + (" (stale, not published)" if state.stale else "")
        )
        return state

    def _mapping(self) -> ConstraintMapping:
        if self.mapping is None:
            self.mapping = load_constraint_mapping()
        return self.mapping

    def _classify_fleet(
        self,
        snapshots: Sequence[VehicleSnapshot],
        now: datetime,
        sequence: int,
    ) -> list[ClassifiedVehicle]:
        classifications = self._map(classify, list(snapshots))
        zone_counts = count_active_by_zone(snapshots, classifications)

        def finalize(index: int) -> ClassifiedVehicle:
            snapshot = snapshots[index]
            vehicle = to_classified_vehicle(snapshot, classifications[index])
            context = PauseContext(
                now=now,
                config=self.pause_config,
                active_vehicles_in_zone=zone_counts.get(snapshot.zone_id) if snapshot.zone_id else None,
                cache_entry=self.cache.get(snapshot.callsign),
            )
            return apply_pause(vehicle, detect_pause(snapshot, vehicle, context))

        vehicles = self._map(finalize, list(range(len(snapshots))))

        # Cache commits happen after every pause decision so each vehicle was judged on the previous poll's entry
        for snapshot in snapshots:
            coordinates = snapshot.coordinates
            self.cache.set_if_newer(
                snapshot.callsign,
                generation=sequence,
                updated_at=now,
                last_seen_at=coordinates.timestamp if coordinates else None,
                coordinates=coordinates,
            )
        if self.cache_eviction is not None:
            self.cache.evict_inactive(now, self.cache_eviction)
        return vehicles

    def _aggregate(
        self,
        sequence: int,
        now: datetime,
        vehicles: list[ClassifiedVehicle],
        bookings: list[ResolvedBooking],
    ) -> FleetState:
        state_counts = _count(vehicle.state.value for vehicle in vehicles)
        color_counts = _count(vehicle.color.value for vehicle in vehicles)
        for state in VehicleState:
            state_counts.setdefault(state.value, 0)
        for color in StatusColor:
            color_counts.setdefault(color.value, 0)

        return FleetState(
            poll_sequence=sequence,
            generated_at=now,
            vehicles=vehicles,
            bookings=bookings,
            state_counts=state_counts,
            color_counts=color_counts,
            assigned_booking_ids=[booking.booking_id for booking in bookings if booking.is_assigned],
            unassigned_booking_ids=[booking.booking_id for booking in bookings if not booking.is_assigned],
        )

    def _publish(self, state: FleetState) -> None:
        with self._publish_lock:
            if self._latest is not None and state.poll_sequence < self._latest.poll_sequence:
                state.stale = True
                logger.debug(
                    f"Poll {state.poll_sequence} finished after poll {self._latest.poll_sequence}; result not published"
                )
                return
            self._latest = state


def _count(values: Iterable[str]) -> dict[str, int]:
    return dict(Counter(values))


def build_engine(source: Settings | None = None) -> FleetStateEngine:
    """Create an engine configured from application settings."""
    source = source or default_settings
    eviction = (
        timedelta(minutes=source.cache_eviction_minutes) if source.cache_eviction_minutes is not None else None
    )
    return FleetStateEngine(
        pause_config=PauseDetectionConfig.from_settings(source),
        resolver_config=ResolverConfig.from_settings(source),
        max_workers=source.max_workers,
        cache_eviction=eviction,
    )
