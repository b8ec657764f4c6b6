"""FastAPI application for the monitoring agent.

This module creates and configures the FastAPI application with:
- the status API (caller IP, record queries, record appends)
- the Wake-on-LAN trigger
- a health route for the agent itself

Usage:
    uvicorn monitoragent.server.app:app_factory --factory --port 11415
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from monitoragent import __version__
from monitoragent.agent import Agent, build_agent
from monitoragent.core.config import load_config
from monitoragent.core.log import setup_logging
from monitoragent.server.api.router import router as api_router

logger = logging.getLogger(__name__)


def create_app(agent: Agent, run_scheduler: bool = False) -> FastAPI:
    """Create FastAPI application around a wired agent.

    Args:
        agent: Agent components (config, query, introspector, Wake-on-LAN).
        run_scheduler: Start the agent's scheduler for the app's lifetime.

    Returns:
        Configured FastAPI application.
    """
    config = agent.config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("Monitor Agent Starting")
        logger.info("=" * 60)
        logger.info("  Name:     %s", config.name)
        logger.info("  Device:   %s", config.device_id)
        logger.info("  Records:  %s", agent.local_dir)
        if agent.reconciler is not None:
            logger.info("  Bucket:   %s", agent.reconciler.store.location)
        else:
            logger.info("  Bucket:   None (sync disabled)")
        logger.info("  Port:     %d", config.port)
        logger.info("=" * 60)
        if run_scheduler:
            agent.scheduler.start()

        yield

        logger.info("Monitor Agent shutting down")
        if run_scheduler:
            agent.close()

    application = FastAPI(
        title="Monitor Agent",
        description="Health monitor with S3-backed dated record sync",
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.config = config
    application.state.query = agent.query
    application.state.local_dir = agent.local_dir
    application.state.introspector = agent.introspector
    application.state.totp_validator = agent.totp_validator
    application.state.wake = agent.wake

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    config = load_config()
    log = setup_logging(config.log_path, config.log_level)
    return create_app(build_agent(config, log), run_scheduler=True)
