"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field

ConnectionStatus = Literal["connected", "disconnected"]


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: ConnectionStatus | None = Field(
        default=None,
        description="Primary database connectivity",
    )
    replica: ConnectionStatus | None = Field(
        default=None,
        description="Read replica connectivity, when a replica is configured",
    )
