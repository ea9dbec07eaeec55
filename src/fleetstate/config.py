"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet State Engine"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Pause/break detection. These values were reverse-engineered from one
    # deployment's upstream behaviour and are tunable hypotheses.
    pause_gps_staleness_minutes: float = Field(
        default=20.0,
        gt=0.0,
        description="Minutes without a GPS update after which a vehicle is treated as paused.",
    )
    pause_anomalous_queue_position: Optional[int] = Field(
        default=4,
        description="Queue position the upstream platform uses for vehicles on break. None disables the rule.",
    )
    pause_dynamic_threshold_fallback: int = Field(
        default=7,
        ge=1,
        description="Typical number of active vehicles per zone, used when no zone count is available.",
    )
    pause_no_data_is_off_shift: bool = Field(
        default=False,
        description="Treat vehicles without status data as paused when the source marks them off-shift.",
    )
    pause_off_shift_markers: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("off_shift",),
        description="no-data markers that mean the upstream knows the vehicle is off-shift.",
    )
    pause_forced_callsigns: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Callsigns an operator has confirmed to be on pause regardless of other signals.",
    )

    # Booking assignment resolution
    suggestion_min_confidence: float = Field(
        default=0.6,
        ge=0.0,
        description="Minimum cross-reference confidence score for a suggestion to be surfaced.",
    )
    constraint_mapping_file: Optional[Path] = Field(
        default=None,
        description="JSON file mapping constraint ids to driver/vehicle callsigns.",
    )

    # Engine
    cache_eviction_minutes: Optional[float] = Field(
        default=None,
        description="Drop cache entries not refreshed for this many minutes. None keeps them forever.",
    )
    max_workers: int = Field(default=1, ge=1, description="Worker threads for per-vehicle/per-booking phases.")

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("constraint_mapping_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator(
        "frontend_allowed_origins",
        "pause_forced_callsigns",
        "pause_off_shift_markers",
        mode="before",
    )
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return tuple(str(item) for item in value)
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
            return tuple()
        # A bare numeric callsign from a .env file or init kwargs
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (str(value),)
        # Return empty tuple if value is None or empty
        return tuple()


settings = Settings()
