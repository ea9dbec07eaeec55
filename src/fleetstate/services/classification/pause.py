"""Break/pause detection over secondary signals.

Vehicles regularly report an "available" status while the driver is on a
break. This pass runs after :func:`classify` and can override the result to
``Break`` from GPS staleness, textual markers, the penalty object and queue
position heuristics. Rules are evaluated in order; the first that fires wins.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from ...models.domain import ClassifiedVehicle, Confidence, VehicleSnapshot, VehicleState
from ..fleet.cache import CacheEntry
from .policy import PauseDetectionConfig

logger = logging.getLogger(__name__)

# Upstream placeholder for "no break finish time".
BREAK_FINISH_SENTINEL = datetime(1, 1, 1)

BREAK_TOKENS = frozenset({"break", "breaks", "pause", "paused"})

_TOKEN = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


def status_tokens(*values: Optional[str]) -> set[str]:
    """Split CamelCase / snake_case / spaced status strings into lower-case tokens."""
    tokens: set[str] = set()
    for value in values:
        if value:
            tokens.update(token.lower() for token in _TOKEN.findall(value))
    return tokens


def is_break_finish_set(value: Optional[datetime]) -> bool:
    if value is None:
        return False
    # Any time on the placeholder date means unset
    return value.date() != BREAK_FINISH_SENTINEL.date()


@dataclass(slots=True)
class PauseContext:
    now: datetime
    config: PauseDetectionConfig = field(default_factory=PauseDetectionConfig)
    active_vehicles_in_zone: Optional[int] = None
    cache_entry: Optional[CacheEntry] = None


@dataclass(slots=True, frozen=True)
class PauseDecision:
    paused: bool
    rule: Optional[str] = None
    reason: Optional[str] = None
    confidence: Confidence = Confidence.HIGH


NOT_PAUSED = PauseDecision(paused=False)


class PauseRule(ABC):
    """Contract for a single pause heuristic."""

    name: str = "pause"
    # Rules allowed to act on vehicles that sent no status data at all
    applies_without_status: bool = False

    @abstractmethod
    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        raise NotImplementedError

    def fire(self, reason: str, confidence: Confidence = Confidence.HIGH) -> PauseDecision:
        return PauseDecision(paused=True, rule=self.name, reason=f"pause:{self.name} {reason}", confidence=confidence)


class GpsStalenessRule(PauseRule):
    name = "gps_stale"

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        entry = context.cache_entry
        cached_seen = entry.last_seen_at if entry else None

        fix_time = snapshot.coordinates.timestamp if snapshot.coordinates is not None else None
        if fix_time is not None:
            last_seen = fix_time
            if cached_seen is not None and cached_seen > last_seen:
                last_seen = cached_seen
            source, confidence = "gps", Confidence.HIGH
        else:
            # No timed fix this poll: only a vehicle that reported before can be stale.
            last_seen = cached_seen
            source, confidence = "cache", Confidence.MEDIUM

        if last_seen is None:
            return None

        age = context.now - last_seen
        if age > context.config.gps_staleness:
            minutes = age.total_seconds() / 60
            limit = context.config.gps_staleness.total_seconds() / 60
            return self.fire(f"no GPS update for {minutes:.1f}min > {limit:g}min ({source})", confidence)
        return None


class TextualMarkerRule(PauseRule):
    name = "status_marker"

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        hits = status_tokens(snapshot.raw_status, snapshot.status_text) & BREAK_TOKENS
        if hits:
            return self.fire(f"status mentions {', '.join(sorted(hits))}")
        return None


class PenaltyRule(PauseRule):
    name = "penalty"

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        penalty = snapshot.penalty
        if penalty is None:
            return None
        if is_break_finish_set(penalty.break_finish_time):
            return self.fire(f"breakFinishTime={penalty.break_finish_time.isoformat()}")
        if penalty.break_reason and penalty.break_reason.strip():
            return self.fire(f"breakReason='{penalty.break_reason.strip()}'")
        if (penalty.penalty_reason or "").strip().lower() == "break":
            return self.fire("penaltyReason=Break")
        return None


class AnomalousQueuePositionRule(PauseRule):
    name = "queue_anomalous"

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        marker = context.config.anomalous_queue_position
        if marker is None or snapshot.queue_position is None:
            return None
        if snapshot.queue_position == marker:
            return self.fire(f"queuePosition={marker} is the platform's break position")
        return None


class DynamicQueueThresholdRule(PauseRule):
    name = "queue_threshold"

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        position = snapshot.queue_position
        if position is None:
            return None

        if context.active_vehicles_in_zone is not None:
            threshold, confidence, basis = context.active_vehicles_in_zone, Confidence.HIGH, "active in zone"
        else:
            threshold, confidence, basis = context.config.dynamic_threshold_fallback, Confidence.LOW, "fallback fleet size"

        if position > threshold:
            return self.fire(f"queuePosition={position} > {threshold} ({basis})", confidence)
        return None


class NoDataOffShiftRule(PauseRule):
    name = "no_data_off_shift"
    applies_without_status = True

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        if snapshot.has_status_data or not context.config.no_data_is_off_shift:
            return None
        marker = (snapshot.no_data_marker or "").lower()
        if marker and marker in context.config.off_shift_markers:
            return self.fire(f"no status data, source marker '{snapshot.no_data_marker}'", Confidence.MEDIUM)
        return None


class OperatorOverrideRule(PauseRule):
    name = "operator_override"
    applies_without_status = True

    def check(self, snapshot: VehicleSnapshot, context: PauseContext) -> Optional[PauseDecision]:
        if snapshot.callsign in context.config.forced_callsigns:
            return self.fire("callsign configured as paused", Confidence.MEDIUM)
        return None


DEFAULT_PAUSE_RULES: tuple[PauseRule, ...] = (
    GpsStalenessRule(),
    TextualMarkerRule(),
    PenaltyRule(),
    AnomalousQueuePositionRule(),
    DynamicQueueThresholdRule(),
    NoDataOffShiftRule(),
    OperatorOverrideRule(),
)


def detect_pause(
    snapshot: VehicleSnapshot,
    classified: ClassifiedVehicle,
    context: PauseContext,
    rules: Sequence[PauseRule] = DEFAULT_PAUSE_RULES,
) -> PauseDecision:
    """Return whether the vehicle should be overridden to ``Break``.

    Offline vehicles are only offered to rules that explicitly handle missing
    status data, so staleness or queue noise never turns Offline into Break.
    """
    offline = classified.state == VehicleState.OFFLINE
    for rule in rules:
        if offline and not rule.applies_without_status:
            continue
        decision = rule.check(snapshot, context)
        if decision is not None and decision.paused:
            logger.debug(f"Vehicle {snapshot.callsign}: {decision.reason}")
            return decision
    return NOT_PAUSED
