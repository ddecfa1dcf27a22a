"""
Health endpoint.

Liveness only: answers while the process serves requests, whatever the
job state.
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    model_config = ConfigDict(extra="forbid")

    status: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        Simple status indicator
    """
    return HealthResponse(status="ok")
