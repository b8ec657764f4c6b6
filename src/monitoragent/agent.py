"""Assemble the agent's components from its configuration.

Everything optional is left as None when its settings are missing, so the
scheduler and the HTTP API only enable what the configuration supports.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from monitoragent.clients.introspect import TokenIntrospector
from monitoragent.clients.vault import VaultClient, validate_totp
from monitoragent.core.config import AgentConfig
from monitoragent.core.naming import data_dir, mirror_dir
from monitoragent.monitor.health import HealthChecker
from monitoragent.monitor.ip_report import IpReporter
from monitoragent.monitor.wol import send_magic_packet
from monitoragent.records.query import StatusQuery
from monitoragent.sync.reconciler import Reconciler
from monitoragent.sync.scheduler import AgentScheduler
from monitoragent.sync.storage import create_object_store

logger = logging.getLogger(__name__)


@dataclass
class Agent:
    """The wired components of one agent process."""

    config: AgentConfig
    local_dir: Path
    mirror_dir: Path
    query: StatusQuery
    scheduler: AgentScheduler
    reconciler: Reconciler | None = None
    health_checker: HealthChecker | None = None
    ip_reporter: IpReporter | None = None
    introspector: TokenIntrospector | None = None
    totp_validator: Callable[[str], bool] | None = None
    wake: Callable[[], None] | None = None
    _clients: list[VaultClient] = field(default_factory=list)

    def close(self) -> None:
        """Stop the scheduler and close HTTP clients."""
        self.scheduler.stop()
        if self.health_checker is not None:
            self.health_checker.close()
        if self.introspector is not None:
            self.introspector.close()
        for client in self._clients:
            client.close()


def build_reconciler(config: AgentConfig, log: logging.Logger | None = None) -> Reconciler | None:
    """Create a reconciler for the configured bucket, or None without one."""
    if not config.bucket:
        return None
    store = create_object_store(config.storage_config)
    return Reconciler(store, log=log)


def build_agent(config: AgentConfig, log: logging.Logger | None = None) -> Agent:
    """Wire every component the configuration enables."""
    log = log or logger
    local = data_dir(config.data_dir, config.name)
    mirror = mirror_dir(config.data_dir, config.name)
    reconciler = build_reconciler(config, log)
    clients: list[VaultClient] = []

    health_checker = None
    if config.enable_check and config.monitor_url:
        health_checker = HealthChecker(
            config.monitor_url,
            local,
            origin=config.name,
            timeout=config.check_timeout,
            log=log,
        )

    ip_reporter = None
    if config.enable_ip_check and config.vault_uri and config.ip_check_url:
        vault = VaultClient(config.vault_uri, config.username, config.password, config.check_timeout)
        clients.append(vault)
        ip_reporter = IpReporter(
            vault,
            config.ip_check_url,
            config.vault_config_path,
            config.vault_custom_key,
            timeout=config.check_timeout,
        )

    totp_validator = None
    wake = None
    if config.enable_wol and config.wol_mac and config.vault_cloud_uri:
        cloud = VaultClient(
            config.vault_cloud_uri, config.username, config.password, config.check_timeout
        )
        clients.append(cloud)
        totp_validator = functools.partial(validate_totp, cloud, config.vault_public_user)
        wake = functools.partial(
            send_magic_packet, config.wol_mac, config.wol_broadcast, config.wol_port
        )

    introspector = None
    if config.introspect_url:
        introspector = TokenIntrospector(
            config.introspect_url,
            config.client_id,
            config.client_secret,
            timeout=config.check_timeout,
        )

    query = StatusQuery(
        local,
        mirror,
        reconciler=reconciler if config.enable_query else None,
        region=config.region,
        device_id=config.device_id,
    )
    scheduler = AgentScheduler(
        config,
        log,
        reconciler=reconciler,
        health_checker=health_checker,
        ip_reporter=ip_reporter,
        local_dir=local,
        mirror_dir=mirror,
    )
    return Agent(
        config=config,
        local_dir=local,
        mirror_dir=mirror,
        query=query,
        scheduler=scheduler,
        reconciler=reconciler,
        health_checker=health_checker,
        ip_reporter=ip_reporter,
        introspector=introspector,
        totp_validator=totp_validator,
        wake=wake,
        _clients=clients,
    )
