"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from monitoragent.clients.introspect import TokenIntrospector
from monitoragent.core.config import AgentConfig
from monitoragent.records.query import StatusQuery


def get_config(request: Request) -> AgentConfig:
    """Get agent configuration from app state."""
    config: AgentConfig = request.app.state.config
    return config


def get_query(request: Request) -> StatusQuery:
    """Get the status query from app state."""
    query: StatusQuery = request.app.state.query
    return query


def get_introspector(request: Request) -> TokenIntrospector | None:
    """Get the token introspector from app state (None if not configured)."""
    introspector: TokenIntrospector | None = request.app.state.introspector
    return introspector


def get_client_ip(request: Request) -> str:
    """Get the caller's IP address."""
    return request.client.host if request.client else ""


def is_private(
    authorization: str | None = Header(default=None),
    introspector: TokenIntrospector | None = Depends(get_introspector),
) -> bool:
    """True if the request carries an active token."""
    if not authorization or introspector is None:
        return False
    return introspector.is_active(authorization)


def require_token(private: bool = Depends(is_private)) -> None:
    """Reject requests without an active token."""
    if not private:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or inactive token",
            headers={"WWW-Authenticate": "Bearer"},
        )
