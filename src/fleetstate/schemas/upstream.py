"""Pydantic models for nested secondary signals in upstream platform payloads.

Only the fields the engine reads are declared; everything else is ignored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PenaltyPayload(_UpstreamModel):
    break_reason: Optional[str] = Field(default=None, alias="breakReason")
    break_finish_time: Optional[datetime] = Field(default=None, alias="breakFinishTime")
    penalty_reason: Optional[str] = Field(default=None, alias="penaltyReason")


class CoordinatesPayload(_UpstreamModel):
    lat: float = Field(validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(validation_alias=AliasChoices("lng", "lon", "longitude"))
    timestamp: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "received", "receivedAt"),
    )


class ShiftPayload(_UpstreamModel):
    started: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("started", "shiftStarted"))
    duration_hours: float = Field(
        default=0.0,
        validation_alias=AliasChoices("durationHours", "shiftDurationHours", "duration_hours"),
    )
    total_jobs: int = Field(default=0, validation_alias=AliasChoices("totalBookings", "totalJobs", "total_jobs"))
    cash_jobs: int = Field(default=0, validation_alias=AliasChoices("cashBookings", "cashJobs"))
    account_jobs: int = Field(default=0, validation_alias=AliasChoices("accountBookings", "accountJobs"))


class SuggestionPayload(_UpstreamModel):
    callsign: str = Field(min_length=1)
    name: Optional[str] = None
    source: Optional[str] = None
    confidence_score: float = Field(
        default=0.0,
        validation_alias=AliasChoices("confidenceScore", "confidence_score", "confidence"),
    )
