"""Status record API routes."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from monitoragent.core.config import AgentConfig
from monitoragent.core.naming import format_date, parse_date, today
from monitoragent.records.query import StatusQuery
from monitoragent.records.store import HealthRecord, RecordError, append_records
from monitoragent.server.api.deps import (
    get_client_ip,
    get_config,
    get_query,
    is_private,
    require_token,
)
from monitoragent.server.schemas import (
    PrivateStatusPoint,
    StatusAppendResponse,
    StatusPoint,
    record_to_point,
)
from monitoragent.sync.storage import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/", response_class=PlainTextResponse)
def client_ip(ip: str = Depends(get_client_ip)) -> str:
    """Echo the caller's IP address."""
    return ip


@router.get("/status", response_model=list[PrivateStatusPoint | StatusPoint])
def read_status(
    limit: int = Query(default=1, ge=1),
    day: str | None = Query(default=None, alias="date"),
    query: StatusQuery = Depends(get_query),
    private: bool = Depends(is_private),
) -> list[StatusPoint]:
    """Read status records for today, a given date, or the last N days."""
    parsed_day: date | None = None
    if day:
        parsed_day = parse_date(day)
        if parsed_day is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid date: {day}",
            )
    try:
        records = query.read(limit, parsed_day)
    except RecordError as e:
        logger.error("Failed to read records: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read records",
        ) from e
    except StorageError as e:
        logger.error("Failed to reach object store: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Object store unavailable",
        ) from e
    return [record_to_point(r, private) for r in records]


@router.put(
    "/status",
    response_model=StatusAppendResponse,
    dependencies=[Depends(require_token)],
)
async def append_status(
    request: Request,
    config: AgentConfig = Depends(get_config),
    ip: str = Depends(get_client_ip),
) -> StatusAppendResponse:
    """Append one row per form field to today's file.

    Each form field becomes (key, value, caller IP).
    """
    form = await request.form()
    records = [
        HealthRecord(timestamp=key, status=value, origin=ip)
        for key, value in form.multi_items()
        if isinstance(value, str)
    ]
    path = request.app.state.local_dir / format_date(today())
    try:
        written = await run_in_threadpool(append_records, path, records)
    except RecordError as e:
        logger.error("Failed to append status: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to write to CSV file",
        ) from e
    logger.info("Appended %d status rows from %s (%s)", written, ip, config.name)
    return StatusAppendResponse(written=written)
