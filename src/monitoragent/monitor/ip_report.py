"""Report this host's public IP into a Vault KV entry.

The entry holds a comma-separated list of every address the host has been
seen with. A new address is appended, a known one leaves the entry unchanged.
"""

from __future__ import annotations

import logging

import httpx

from monitoragent.clients.vault import VaultClient, VaultError

logger = logging.getLogger(__name__)


class IpReporter:
    """Append the current public IP to a Vault KV value."""

    def __init__(
        self,
        vault: VaultClient,
        ip_check_url: str,
        config_path: str,
        custom_key: str,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the reporter.

        Args:
            vault: Client for the Vault holding the entry.
            ip_check_url: URL returning the caller's public IP as plain text.
            config_path: KV v2 API path of the entry.
            custom_key: Key inside the entry holding the address list.
            timeout: Timeout of the IP check request.
        """
        self._vault = vault
        self._ip_check_url = ip_check_url
        self._config_path = config_path
        self._custom_key = custom_key
        self._timeout = timeout

    def current_ip(self) -> str:
        response = httpx.get(self._ip_check_url, timeout=self._timeout)
        response.raise_for_status()
        return response.text.strip()

    def report(self) -> bool:
        """Report the current IP.

        Returns:
            True if the entry was updated, False if the IP was already known.

        Raises:
            VaultError: If Vault cannot be read or written.
            httpx.HTTPError: If the IP check fails.
        """
        token = self._vault.login()
        secret = self._vault.read_kv(self._config_path, token=token)
        known = secret.get(self._custom_key)
        if not isinstance(known, str):
            raise VaultError(f"Key {self._custom_key!r} missing at {self._config_path}")

        ip = self.current_ip()
        if ip in {part.strip() for part in known.split(",")}:
            logger.info("IP %s already reported, skipping", ip)
            return False

        secret[self._custom_key] = f"{known},{ip}" if known else ip
        self._vault.write_kv(self._config_path, secret, token=token)
        logger.info("Reported new IP %s", ip)
        return True
