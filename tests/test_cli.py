"""Tests for CLI commands - run, upload, sync, fingerprint."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterator
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from monitoragent.cli import cli
from monitoragent.core.naming import format_date, today
from monitoragent.sync.storage import LocalFSObjectStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep handlers off the runner's captured streams."""
    with patch("monitoragent.cli.setup_logging", return_value=logging.getLogger("monitoragent.test")):
        yield


@pytest.fixture
def store(tmp_path: Path) -> Iterator[LocalFSObjectStore]:
    """Local object store standing in for S3."""
    store = LocalFSObjectStore(tmp_path / "objects", bucket="health")
    store.create_bucket()
    with patch("monitoragent.agent.create_object_store", return_value=store):
        yield store


def _write_config(tmp_path: Path, **extra: object) -> Path:
    path = tmp_path / "config.json"
    data = {"name": "monitor", "deviceId": "host", "dataDir": str(tmp_path / "data"), **extra}
    path.write_text(json.dumps(data))
    return path


class TestFingerprintCommand:
    """Tests for 'monitoragent fingerprint'."""

    def test_prints_sha256(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "file"
        path.write_bytes(b"hello")

        result = runner.invoke(cli, ["fingerprint", str(path)])

        assert result.exit_code == 0
        assert result.output.strip() == hashlib.sha256(b"hello").hexdigest()

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["fingerprint", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestConfigLoading:
    """Tests for the group's --config option."""

    def test_missing_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.json"), "upload"])

        assert result.exit_code == 1
        assert "Cannot read config file" in result.output

    def test_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"name": "monitor", "checkDuration": 0}))

        result = runner.invoke(cli, ["--config", str(path), "sync"])

        assert result.exit_code == 1
        assert "must be positive" in result.output


class TestUploadCommand:
    """Tests for 'monitoragent upload'."""

    def test_requires_bucket(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(_write_config(tmp_path)), "upload"])

        assert result.exit_code == 1
        assert "No bucket configured" in result.output

    def test_uploads_all_files(self, runner: CliRunner, tmp_path: Path, store: LocalFSObjectStore) -> None:
        """Past days are uploaded and removed, today's file stays."""
        data = tmp_path / "data" / "monitor"
        data.mkdir(parents=True)
        past = today() - timedelta(days=1)
        (data / format_date(past)).write_text("a,500,monitor\n")
        (data / format_date(today())).write_text("b,500,monitor\n")
        config = _write_config(tmp_path, bucket="health")

        result = runner.invoke(cli, ["--config", str(config), "upload"])

        assert result.exit_code == 0, result.output
        assert "Uploaded 2 of 2 files" in result.output
        assert store.list_objects() == sorted(
            [f"{format_date(past)}_host", f"{format_date(today())}_host"]
        )
        assert not (data / format_date(past)).exists()
        assert (data / format_date(today())).exists()

    def test_single_date(self, runner: CliRunner, tmp_path: Path, store: LocalFSObjectStore) -> None:
        data = tmp_path / "data" / "monitor"
        data.mkdir(parents=True)
        (data / "2024-05-01").write_text("a,500,monitor\n")
        (data / "2024-05-02").write_text("b,500,monitor\n")
        config = _write_config(tmp_path, bucket="health")

        result = runner.invoke(cli, ["--config", str(config), "upload", "--date", "2024-05-01"])

        assert result.exit_code == 0, result.output
        assert "2024-05-01_host: upload" in result.output
        assert store.list_objects() == ["2024-05-01_host"]
        assert (data / "2024-05-02").exists()

    def test_invalid_date(self, runner: CliRunner, tmp_path: Path, store: LocalFSObjectStore) -> None:
        config = _write_config(tmp_path, bucket="health")

        result = runner.invoke(cli, ["--config", str(config), "upload", "--date", "yesterday"])

        assert result.exit_code == 1
        assert "Invalid date" in result.output


class TestSyncCommand:
    """Tests for 'monitoragent sync'."""

    def _seed(self, store: LocalFSObjectStore, tmp_path: Path, key: str, content: str) -> None:
        source = tmp_path / "seed"
        source.write_text(content)
        store.put_object(key, source, hashlib.sha256(content.encode()).hexdigest())

    def test_fetches_remote_files(self, runner: CliRunner, tmp_path: Path, store: LocalFSObjectStore) -> None:
        self._seed(store, tmp_path, "2024-05-01_other", "a,500,other\n")
        config = _write_config(tmp_path, bucket="health")

        result = runner.invoke(cli, ["--config", str(config), "sync"])

        assert result.exit_code == 0, result.output
        assert "Fetched 1 of 1 files" in result.output
        mirrored = tmp_path / "data" / "monitor" / "remote" / "2024-05-01_other"
        assert mirrored.read_text() == "a,500,other\n"

    def test_force_refreshes_past_copies(
        self, runner: CliRunner, tmp_path: Path, store: LocalFSObjectStore
    ) -> None:
        self._seed(store, tmp_path, "2024-05-01_other", "a,500,other\n")
        config = _write_config(tmp_path, bucket="health")
        runner.invoke(cli, ["--config", str(config), "sync"])
        self._seed(store, tmp_path, "2024-05-01_other", "a,500,other\nb,502,other\n")

        runner.invoke(cli, ["--config", str(config), "sync"])
        mirrored = tmp_path / "data" / "monitor" / "remote" / "2024-05-01_other"
        assert mirrored.read_text() == "a,500,other\n"

        result = runner.invoke(cli, ["--config", str(config), "sync", "--force"])
        assert result.exit_code == 0, result.output
        assert mirrored.read_text() == "a,500,other\nb,502,other\n"

    def test_requires_bucket(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(_write_config(tmp_path)), "sync"])
        assert result.exit_code == 1


class TestRunCommand:
    """Tests for 'monitoragent run'."""

    def test_serves_on_configured_port(self, runner: CliRunner, tmp_path: Path) -> None:
        config = _write_config(tmp_path, port=12000)

        with patch("uvicorn.run") as uvicorn_run:
            result = runner.invoke(cli, ["--config", str(config), "run"])

        assert result.exit_code == 0, result.output
        uvicorn_run.assert_called_once()
        assert uvicorn_run.call_args.kwargs["port"] == 12000
