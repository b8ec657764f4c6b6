"""Tests for component wiring."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from monitoragent.agent import build_agent, build_reconciler
from monitoragent.core.config import AgentConfig
from monitoragent.server.app import create_app
from monitoragent.sync.storage import S3ObjectStore


@pytest.fixture
def base(tmp_path: Path) -> dict[str, object]:
    return {"name": "monitor", "device_id": "host", "data_dir": tmp_path}


class TestBuildAgent:
    """Tests for build_agent()."""

    def test_minimal(self, base: dict[str, object], tmp_path: Path) -> None:
        """Without optional settings only the query and scheduler exist."""
        agent = build_agent(AgentConfig(**base))  # type: ignore[arg-type]

        assert agent.local_dir == tmp_path / "monitor"
        assert agent.mirror_dir == tmp_path / "monitor" / "remote"
        assert agent.reconciler is None
        assert agent.health_checker is None
        assert agent.ip_reporter is None
        assert agent.introspector is None
        assert agent.totp_validator is None
        assert agent.wake is None
        assert agent.query._reconciler is None

    def test_bucket(self, base: dict[str, object]) -> None:
        agent = build_agent(AgentConfig(bucket="health", **base))  # type: ignore[arg-type]

        assert agent.reconciler is not None
        assert isinstance(agent.reconciler.store, S3ObjectStore)
        assert agent.query._reconciler is agent.reconciler

    def test_query_without_bucket_access(self, base: dict[str, object]) -> None:
        """enableQuery=false keeps queries local."""
        agent = build_agent(AgentConfig(bucket="health", enable_query=False, **base))  # type: ignore[arg-type]

        assert agent.reconciler is not None
        assert agent.query._reconciler is None

    def test_health_checker(self, base: dict[str, object]) -> None:
        config = AgentConfig(enable_check=True, monitor_url="https://service.example.com", **base)  # type: ignore[arg-type]
        agent = build_agent(config)
        try:
            assert agent.health_checker is not None
        finally:
            agent.close()

    def test_check_needs_url(self, base: dict[str, object]) -> None:
        agent = build_agent(AgentConfig(enable_check=True, **base))  # type: ignore[arg-type]
        assert agent.health_checker is None

    def test_ip_reporter(self, base: dict[str, object]) -> None:
        config = AgentConfig(
            enable_ip_check=True,
            vault_uri="https://vault.example.com",
            ip_check_url="https://ip.example.com",
            vault_config_path="/v1/secret/data/hosts",
            vault_custom_key="ips",
            **base,  # type: ignore[arg-type]
        )
        agent = build_agent(config)
        try:
            assert agent.ip_reporter is not None
        finally:
            agent.close()

    def test_wake_on_lan(self, base: dict[str, object]) -> None:
        """The wake callable sends to the configured MAC and broadcast."""
        config = AgentConfig(
            enable_wol=True,
            wol_mac="00:11:22:aa:bb:cc",
            wol_broadcast="192.168.1.255",
            vault_cloud_uri="https://cloud.example.com",
            vault_public_user="wol",
            **base,  # type: ignore[arg-type]
        )
        with patch("monitoragent.agent.send_magic_packet") as send:
            agent = build_agent(config)
        try:
            assert agent.totp_validator is not None
            assert agent.wake is not None
            agent.wake()
            send.assert_called_once_with("00:11:22:aa:bb:cc", "192.168.1.255", 9)
        finally:
            agent.close()

    def test_wake_on_lan_disabled(self, base: dict[str, object]) -> None:
        config = AgentConfig(
            wol_mac="00:11:22:aa:bb:cc",
            vault_cloud_uri="https://cloud.example.com",
            **base,  # type: ignore[arg-type]
        )
        agent = build_agent(config)
        assert agent.wake is None

    def test_introspector(self, base: dict[str, object]) -> None:
        config = AgentConfig(introspect_url="https://auth.example.com/introspect", **base)  # type: ignore[arg-type]
        agent = build_agent(config)
        try:
            assert agent.introspector is not None
        finally:
            agent.close()

    def test_build_reconciler_without_bucket(self, base: dict[str, object]) -> None:
        assert build_reconciler(AgentConfig(**base)) is None  # type: ignore[arg-type]


class TestAppLifespan:
    """The app runs the scheduler for its lifetime when asked to."""

    def test_scheduler_started_and_stopped(self, base: dict[str, object]) -> None:
        agent = build_agent(AgentConfig(**base))  # type: ignore[arg-type]
        agent.scheduler = MagicMock()

        with TestClient(create_app(agent, run_scheduler=True)) as client:
            assert client.get("/health").status_code == 200
            agent.scheduler.start.assert_called_once_with()

        agent.scheduler.stop.assert_called_once_with()

    def test_scheduler_not_started_by_default(self, base: dict[str, object]) -> None:
        agent = build_agent(AgentConfig(**base))  # type: ignore[arg-type]
        agent.scheduler = MagicMock()

        with TestClient(create_app(agent)):
            pass

        agent.scheduler.start.assert_not_called()
