"""Map a vehicle's raw upstream status onto a fixed set of operational states."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from ...models.domain import Confidence, StatusColor, VehicleSnapshot, VehicleState

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_status(value: str) -> str:
    """Lower-case and drop separators so ``Busy Going-To_Pickup`` == ``busygoingtopickup``."""
    return _NON_ALNUM.sub("", value.lower())


@dataclass(frozen=True)
class Classification:
    state: VehicleState
    color: StatusColor
    confidence: Confidence
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusRule:
    """A keyword family. Matches when any keyword is present and no exclusion is."""

    name: str
    keywords: tuple[str, ...]
    state: VehicleState
    color: StatusColor
    excludes: tuple[str, ...] = ()

    def match(self, normalized: str) -> str | None:
        if any(excluded in normalized for excluded in self.excludes):
            return None
        for keyword in self.keywords:
            if keyword in normalized:
                return keyword
        return None


AVAILABLE_RULE = StatusRule(
    name="available",
    keywords=("available", "clear", "free"),
    excludes=("notavailable", "unavailable"),
    state=VehicleState.AVAILABLE,
    color=StatusColor.GREEN,
)

# The "going to pickup" sub-case of the busy family, checked ahead of it.
EN_ROUTE_RULE = StatusRule(
    name="en_route",
    keywords=("goingto", "enroute", "onroute"),
    state=VehicleState.EN_ROUTE,
    color=StatusColor.YELLOW,
)

BUSY_RULE = StatusRule(
    name="busy",
    keywords=("busy", "meter", "pickup", "dispatch", "joboffered", "job"),
    excludes=("nojob",),
    state=VehicleState.BUSY,
    color=StatusColor.RED,
)

BREAK_RULE = StatusRule(
    name="break",
    keywords=("break", "lunch", "endofshift", "notavailable", "unavailable", "suspend", "pause", "offduty"),
    state=VehicleState.BREAK,
    color=StatusColor.GRAY,
)

# Vehicles the platform itself reports as logged off.
OFFLINE_RULE = StatusRule(
    name="offline",
    keywords=("offline", "loggedoff", "loggedout", "signedoff"),
    state=VehicleState.OFFLINE,
    color=StatusColor.GRAY,
)

DEFAULT_STATUS_RULES: tuple[StatusRule, ...] = (
    AVAILABLE_RULE,
    EN_ROUTE_RULE,
    BUSY_RULE,
    BREAK_RULE,
    OFFLINE_RULE,
)


def classify(snapshot: VehicleSnapshot, rules: Sequence[StatusRule] = DEFAULT_STATUS_RULES) -> Classification:
    """Classify one snapshot from its status fields alone. First matching rule wins."""

    if not snapshot.has_status_data:
        return Classification(
            state=VehicleState.OFFLINE,
            color=StatusColor.GRAY,
            confidence=Confidence.LOW,
            reasons=("status:no-data",),
        )

    raw_status = snapshot.raw_status or ""
    normalized = normalize_status(raw_status)
    for rule in rules:
        keyword = rule.match(normalized)
        if keyword is not None:
            return Classification(
                state=rule.state,
                color=rule.color,
                confidence=Confidence.HIGH,
                reasons=(f"status:{rule.name} ('{keyword}' in '{raw_status}')",),
            )

    logger.warning(f"Unrecognized vehicle status '{raw_status}' for vehicle {snapshot.callsign}")
    return Classification(
        state=VehicleState.UNKNOWN,
        color=StatusColor.GRAY,
        confidence=Confidence.LOW,
        reasons=(f"status:unrecognized '{raw_status}'",),
    )
