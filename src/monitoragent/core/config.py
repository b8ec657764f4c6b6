"""Agent configuration.

The configuration is a single JSON file loaded once at startup. Keys use the
camelCase names shared with existing deployments, for example::

    {
        "bucket": "health",
        "endpoint": "https://s3.example.com",
        "region": "us-east-1",
        "name": "monitor",
        "monitorUrl": "https://service.example.com/health",
        "enableCheck": true,
        "checkDuration": 30,
        "enableUpload": true,
        "uploadDuration": 60,
        "enableSync": true,
        "syncDuration": 60
    }
"""

from __future__ import annotations

import json
import os
import platform
import socket
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from monitoragent.core.naming import sanitize_device_id

CONFIG_ENV_VAR = "MONITORAGENT_CONFIG"
DEFAULT_PORT = 11415
DEFAULT_REGION = "us-east-1"


class ConfigError(Exception):
    """Configuration file is missing or invalid."""


def default_config_path() -> Path:
    """Get the default configuration file path (~/.aws/config.json)."""
    return Path.home() / ".aws" / "config.json"


def default_data_dir() -> Path:
    """Get the default base directory for dated files.

    Linux hosts log under /var/log, other platforms under the home directory.
    """
    if platform.system() == "Linux":
        return Path("/var/log")
    return Path.home()


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class AgentConfig:
    """Configuration for the monitoring agent.

    Durations: check_duration is in seconds, upload/sync/report durations
    are in minutes.
    """

    name: str
    bucket: str = ""
    endpoint: str | None = None
    region: str = DEFAULT_REGION
    access_key: str | None = None
    secret_key: str | None = None
    device_id: str = field(default_factory=socket.gethostname)
    data_dir: Path = field(default_factory=default_data_dir)
    port: int = DEFAULT_PORT

    # Health check
    monitor_url: str = ""
    check_timeout: float = 10.0
    enable_check: bool = False
    check_duration: int = 60

    # Reconciliation
    enable_upload: bool = False
    upload_duration: int = 60
    enable_sync: bool = False
    sync_duration: int = 60
    force_sync: bool = False
    enable_query: bool = True

    # Token introspection
    client_id: str = ""
    client_secret: str = ""
    introspect_url: str = ""

    # Vault / TOTP / IP report
    username: str = ""
    password: str = ""
    vault_public_user: str = ""
    vault_uri: str = ""
    vault_cloud_uri: str = ""
    vault_config_path: str = ""
    vault_custom_key: str = ""
    ip_check_url: str = ""
    enable_ip_check: bool = False
    report_duration: int = 60

    # Wake-on-LAN
    enable_wol: bool = False
    wol_mac: str = ""
    wol_broadcast: str = "255.255.255.255"
    wol_port: int = 9

    # Logging
    log_path: Path | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Normalize URLs and paths, validate intervals."""
        if not self.name:
            raise ConfigError("'name' is required")
        self.device_id = sanitize_device_id(self.device_id)
        self.data_dir = Path(self.data_dir).expanduser()
        if self.log_path is not None:
            self.log_path = Path(self.log_path).expanduser()
        for attr in ("endpoint", "vault_uri", "vault_cloud_uri"):
            value = getattr(self, attr)
            if value:
                setattr(self, attr, value.rstrip("/"))
        for attr in ("check_duration", "upload_duration", "sync_duration", "report_duration"):
            if getattr(self, attr) <= 0:
                raise ConfigError(f"'{_snake_to_camel(attr)}' must be positive")

    @property
    def storage_config(self) -> dict[str, str | None]:
        """Object store settings in the form create_object_store() expects."""
        return {
            "type": "s3",
            "bucket": self.bucket,
            "endpoint_url": self.endpoint,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentConfig:
        """Create from a camelCase dictionary.

        Unknown keys are ignored. snake_case keys are accepted too.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            camel = _snake_to_camel(f.name)
            if camel in data:
                kwargs[f.name] = data[camel]
            elif f.name in data:
                kwargs[f.name] = data[f.name]
        # Older files spell it deviceID
        if "device_id" not in kwargs and data.get("deviceID"):
            kwargs["device_id"] = data["deviceID"]
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(str(e)) from e


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Resolve the config path from argument, environment, then default."""
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return default_config_path()


def load_config(path: Path | str | None = None) -> AgentConfig:
    """Load the agent configuration.

    Args:
        path: Explicit config file path. Falls back to $MONITORAGENT_CONFIG,
            then ~/.aws/config.json.

    Returns:
        Parsed configuration.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    config_file = resolve_config_path(path)
    try:
        raw = config_file.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")
    return AgentConfig.from_dict(data)
