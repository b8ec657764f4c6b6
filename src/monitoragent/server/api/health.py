"""Health check API route."""

from __future__ import annotations

from fastapi import APIRouter

from monitoragent.server.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report that the agent is serving."""
    return HealthResponse(status="ok")
