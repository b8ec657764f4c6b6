"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from monitoragent.server.api import health, status, wol

router = APIRouter()

router.include_router(health.router)
router.include_router(status.router)
router.include_router(wol.router)
