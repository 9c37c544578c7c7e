"""Pydantic models for health endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Service health, including how fresh the TC stats are."""

    status: str = "healthy"
    database_operational: bool = True
    last_stats_update: Optional[datetime] = None
    error: Optional[str] = None
