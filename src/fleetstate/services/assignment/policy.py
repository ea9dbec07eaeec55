"""Thresholds for booking assignment resolution."""

from __future__ import annotations

from dataclasses import dataclass

from ...config import Settings, settings as default_settings


@dataclass(frozen=True)
class ResolverConfig:
    # Cross-reference suggestions scoring below this are dropped entirely.
    suggestion_min_confidence: float = 0.6

    def validate(self) -> None:
        if self.suggestion_min_confidence < 0:
            raise ValueError("suggestion_min_confidence must be >= 0")

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "ResolverConfig":
        source = source or default_settings
        config = cls(suggestion_min_confidence=source.suggestion_min_confidence)
        config.validate()
        return config
