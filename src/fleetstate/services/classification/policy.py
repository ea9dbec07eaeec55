"""Tunable thresholds for break/pause detection.

No logic here, only parameters, so deployments can retune the heuristics
without touching the decision functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from ...config import Settings, settings as default_settings


@dataclass(frozen=True)
class PauseDetectionConfig:
    # A vehicle whose last GPS fix is strictly older than this is paused.
    gps_staleness: timedelta = timedelta(minutes=20)

    # Queue position one upstream platform reports for vehicles on break.
    # Observed in a single deployment; None disables the rule.
    anomalous_queue_position: Optional[int] = 4

    # Stand-in for "active vehicles in this zone" when the poll carries no
    # zone information. Decisions made with it are low confidence.
    dynamic_threshold_fallback: int = 7

    # Only pause vehicles without status data when the source explicitly
    # says it emitted "no data" because the vehicle is off shift.
    no_data_is_off_shift: bool = False
    off_shift_markers: frozenset[str] = field(default_factory=lambda: frozenset({"off_shift"}))

    # Callsigns an operator has confirmed as paused.
    forced_callsigns: frozenset[str] = field(default_factory=frozenset)

    def validate(self) -> None:
        if self.gps_staleness <= timedelta(0):
            raise ValueError("gps_staleness must be > 0")
        if self.dynamic_threshold_fallback < 1:
            raise ValueError("dynamic_threshold_fallback must be >= 1")

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "PauseDetectionConfig":
        source = source or default_settings
        config = cls(
            gps_staleness=timedelta(minutes=source.pause_gps_staleness_minutes),
            anomalous_queue_position=source.pause_anomalous_queue_position,
            dynamic_threshold_fallback=source.pause_dynamic_threshold_fallback,
            no_data_is_off_shift=source.pause_no_data_is_off_shift,
            off_shift_markers=frozenset(marker.lower() for marker in source.pause_off_shift_markers),
            forced_callsigns=frozenset(source.pause_forced_callsigns),
        )
        config.validate()
        return config
