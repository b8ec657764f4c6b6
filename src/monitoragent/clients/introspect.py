"""OAuth2 token introspection (RFC 7662)."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class TokenIntrospector:
    """Ask the authorization server whether a bearer token is active."""

    def __init__(
        self,
        introspect_url: str,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
    ) -> None:
        self._url = introspect_url
        self._client = httpx.Client(
            timeout=timeout,
            auth=(client_id, client_secret),
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def is_active(self, token: str | None) -> bool:
        """Return True if token is active.

        Accepts the raw token or an "Authorization" header value. Any transport
        or decoding error counts as inactive.
        """
        if not token or not self._url:
            return False
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        try:
            response = self._client.post(self._url, data={"token": token})
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            logger.error("Token introspection failed: %s", e)
            return False
        except ValueError:
            logger.error("Token introspection returned invalid JSON")
            return False
        return isinstance(result, dict) and result.get("active") is True
