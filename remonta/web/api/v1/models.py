"""Pydantic models for API v1."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class StateCount(BaseModel):
    """Active contractors in one state."""
    state: str
    name: Optional[str] = None
    count: int


class StatesResponse(BaseModel):
    """Contractor counts by state."""
    success: bool = True
    states: List[StateCount]
    total: int


class GeocodeResponse(BaseModel):
    """Resolved search location; all fields null when nothing matched."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"latitude": -33.815, "longitude": 151.0011, "state": "NSW"}
        }
    )

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    state: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    geocoder: str
    uptime_seconds: int
