"""Vehicle state classification."""

from .classifier import Classification, StatusRule, classify
from .pause import PauseContext, PauseDecision, PauseRule, detect_pause
from .policy import PauseDetectionConfig
from .service import apply_pause, count_active_by_zone, to_classified_vehicle

__all__ = [
    "Classification",
    "StatusRule",
    "classify",
    "PauseContext",
    "PauseDecision",
    "PauseRule",
    "detect_pause",
    "PauseDetectionConfig",
    "apply_pause",
    "count_active_by_zone",
    "to_classified_vehicle",
]
