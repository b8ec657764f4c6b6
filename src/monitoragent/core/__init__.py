"""Core module - configuration, naming, fingerprints and logging."""

from monitoragent.core.config import (
    AgentConfig,
    ConfigError,
    load_config,
)
from monitoragent.core.fingerprint import (
    FileError,
    compute_fingerprint,
    to_store_checksum,
)
from monitoragent.core.log import setup_logging
from monitoragent.core.naming import (
    RemoteKey,
    is_date,
    local_path,
    mirror_path,
    parse_date,
    parse_remote_key,
    remote_key,
    today,
)

__all__ = [
    # Config
    "AgentConfig",
    "ConfigError",
    "load_config",
    # Fingerprints
    "FileError",
    "compute_fingerprint",
    "to_store_checksum",
    # Logging
    "setup_logging",
    # Naming
    "RemoteKey",
    "is_date",
    "local_path",
    "mirror_path",
    "parse_date",
    "parse_remote_key",
    "remote_key",
    "today",
]
