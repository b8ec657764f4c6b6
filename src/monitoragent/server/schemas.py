"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from monitoragent.records.store import HealthRecord

# === Status schemas ===


class StatusPoint(BaseModel):
    """Public status point (chart x/y)."""

    x: str
    y: str


class PrivateStatusPoint(StatusPoint):
    """Status point including where it was recorded from."""

    origin: str


class StatusAppendResponse(BaseModel):
    """Response for appended status rows."""

    written: int


# === Wake-on-LAN schemas ===


class WakeRequest(BaseModel):
    """Request body for a Wake-on-LAN trigger."""

    code: str = Field(min_length=1, max_length=16)


class WakeResponse(BaseModel):
    """Wake-on-LAN trigger response."""

    status: str


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def record_to_point(record: HealthRecord, private: bool) -> StatusPoint:
    """Convert a HealthRecord to its public or private response model."""
    if private:
        return PrivateStatusPoint(**record.to_private())
    return StatusPoint(**record.to_public())
