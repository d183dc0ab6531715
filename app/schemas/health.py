"""Pydantic schema for the health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Service status plus user store connectivity."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (dev or prod)")
    database: Literal["connected", "disconnected"] = Field(
        description="Whether a trivial query against the user store succeeded",
    )
