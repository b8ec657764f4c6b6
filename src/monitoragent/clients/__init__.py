"""HTTP clients for the agent's external collaborators."""

from monitoragent.clients.introspect import TokenIntrospector
from monitoragent.clients.vault import VaultClient, VaultError, validate_totp

__all__ = [
    "TokenIntrospector",
    "VaultClient",
    "VaultError",
    "validate_totp",
]
