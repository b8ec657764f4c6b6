"""HTTP client for HashiCorp Vault.

This module provides:
- VaultClient: userpass login, TOTP code lookup, KV v2 read/write
- validate_totp: one-time password check used to authorize Wake-on-LAN
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class VaultError(Exception):
    """Vault request failed or returned an unexpected payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class VaultClient:
    """Minimal Vault client authenticating with the userpass method."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the Vault client.

        Args:
            base_url: Vault address (e.g. "https://vault.example.com").
            username: userpass username.
            password: userpass password.
            timeout: Request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._client = httpx.Client(base_url=self._base_url, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> VaultClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise VaultError(f"Vault request {method} {path} failed: {e}") from e
        if response.status_code >= 400:
            raise VaultError(
                f"Vault returned {response.status_code} for {method} {path}",
                response.status_code,
            )
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise VaultError(f"Invalid JSON from Vault for {path}") from e
        if not isinstance(data, dict):
            raise VaultError(f"Unexpected payload from Vault for {path}")
        return data

    def login(self) -> str:
        """Log in with userpass and return a client token.

        Raises:
            VaultError: If login fails.
        """
        data = self._request(
            "POST",
            f"/v1/auth/userpass/login/{self._username}",
            json={"password": self._password},
        )
        token = (data.get("auth") or {}).get("client_token")
        if not isinstance(token, str) or not token:
            raise VaultError("Vault login response has no client token")
        return token

    def get_totp_code(self, key_name: str, token: str | None = None) -> str:
        """Read the current TOTP code generated for key_name."""
        token = token or self.login()
        data = self._request(
            "GET",
            f"/v1/totp/code/{key_name}",
            headers={"X-Vault-Token": token},
        )
        code = (data.get("data") or {}).get("code")
        if not isinstance(code, str):
            raise VaultError(f"No TOTP code in Vault response for {key_name}")
        return code

    def read_kv(self, path: str, token: str | None = None) -> dict[str, Any]:
        """Read the data of a KV v2 secret at path (e.g. "/v1/secret/data/app")."""
        token = token or self.login()
        data = self._request("GET", path, headers={"X-Vault-Token": token})
        secret = (data.get("data") or {}).get("data")
        if not isinstance(secret, dict):
            raise VaultError(f"No KV data at {path}")
        return secret

    def write_kv(self, path: str, secret: dict[str, Any], token: str | None = None) -> None:
        """Write a KV v2 secret at path."""
        token = token or self.login()
        self._request("POST", path, headers={"X-Vault-Token": token}, json={"data": secret})


def validate_totp(client: VaultClient, key_name: str, code: str) -> bool:
    """Check a one-time password against the code Vault currently generates.

    Any Vault failure rejects the code.
    """
    if not code:
        return False
    try:
        expected = client.get_totp_code(key_name)
    except VaultError as e:
        logger.error("TOTP validation failed: %s", e)
        return False
    return hmac.compare_digest(code.encode(), expected.encode())
