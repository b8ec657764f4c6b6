"""Wake-on-LAN API route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from monitoragent.server.schemas import WakeRequest, WakeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["wol"])


@router.post("/wol", response_model=WakeResponse, status_code=status.HTTP_202_ACCEPTED)
def wake(body: WakeRequest, request: Request) -> WakeResponse:
    """Send a magic packet once the one-time code checks out."""
    send = request.app.state.wake
    validate = request.app.state.totp_validator
    if send is None or validate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Wake-on-LAN is disabled",
        )

    if not validate(body.code):
        logger.warning("Rejected Wake-on-LAN code")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid code",
        )

    try:
        send()
    except OSError as e:
        logger.error("Failed to send magic packet: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send magic packet",
        ) from e
    return WakeResponse(status="sent")
