"""
================================================================================
Token Manager with Auto-Refresh and Caching
================================================================================

Manages Taiga authentication tokens with:
    - Pre-issued token support (taiga.token)
    - Username/password login against /auth (type "normal")
    - Cross-process token caching using filelock, keyed per server and user
    - Refresh before the cached token expires

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from filelock import FileLock
from loguru import logger

from .errors import AuthenticationError, TransportError


# Token cache configuration
TOKEN_CACHE_DIR = Path(__file__).parent.parent.parent / ".token_cache"
TOKEN_CACHE_FILE = TOKEN_CACHE_DIR / "cache.json"
TOKEN_LOCK_FILE = TOKEN_CACHE_DIR / "cache.lock"

# Default token TTL (1 hour in seconds)
DEFAULT_TOKEN_TTL = 3600

# Refresh token when less than this many seconds remain
TOKEN_REFRESH_BUFFER = 300  # 5 minutes

AUTH_ENDPOINT = "/auth"


class TokenManager:
    """
    Token manager with automatic refresh and cross-process caching.

    Token sources (first match wins):
        1. ``taiga.token`` from configuration, used as-is
        2. In-memory token that is still fresh
        3. File cache shared with other pytest workers
        4. A new login with ``taiga.username`` / ``taiga.password``

    Authentication Headers Applied:
        - Authorization: Bearer {token}

    Usage:
        >>> token_manager = TokenManager(config)
        >>> headers = token_manager.apply({})
        >>> # headers now contains the Authorization header
    """

    def __init__(self, config=None, transport: Optional[httpx.BaseTransport] = None) -> None:
        """
        Initialize token manager.

        Args:
            config: ConfigLoader instance for configuration access
            transport: Optional httpx transport used for the login request
        """
        self.config = config
        self.transport = transport
        self._token: Optional[str] = None
        self._refresh: Optional[str] = None
        self._expires_at: float = 0

    @property
    def base_url(self) -> str:
        base = self._setting("taiga.base_url", "http://localhost:9000").rstrip("/")
        prefix = self._setting("taiga.api_prefix", "/api/v1")
        return f"{base}/{prefix.strip('/')}" if prefix else base

    @property
    def cache_key(self) -> str:
        return f"{self.base_url}|{self._setting('taiga.username', '')}"

    def apply(self, headers: Dict[str, str]) -> Dict[str, str]:
        """
        Apply authentication headers to request.

        Automatically logs in if no valid token is available.

        Args:
            headers: Existing headers dictionary

        Returns:
            Headers with authentication added
        """
        token = self.get_token()

        result = dict(headers)
        if token:
            result["Authorization"] = f"Bearer {token}"
        return result

    def get_token(self) -> Optional[str]:
        """
        Return a usable token, or None when the suite runs anonymously.
        """
        static_token = self._setting("taiga.token")
        if static_token:
            return static_token

        if not self._setting("taiga.username"):
            return None

        self._ensure_valid_token()
        return self._token

    def _ensure_valid_token(self) -> None:
        """
        Ensure token is valid, refreshing if necessary.

        Checks:
            1. In-memory token validity
            2. Cached token from file (cross-process sharing)
            3. Fetches new token if neither is valid
        """
        current_time = time.time()

        if self._token and self._expires_at > current_time + TOKEN_REFRESH_BUFFER:
            return

        cached = self._load_cached_token()
        if cached and cached["expires_at"] > current_time + TOKEN_REFRESH_BUFFER:
            self._adopt(cached)
            return

        self._fetch_token()

    def _fetch_token(self) -> None:
        """
        Log in and store the new token.

        The file lock keeps parallel workers from logging in at the same time.
        """
        TOKEN_CACHE_DIR.mkdir(parents=True, exist_ok=True)
        with FileLock(str(TOKEN_LOCK_FILE)):
            # Double-check cache after acquiring lock
            cached = self._load_cached_token()
            if cached and cached["expires_at"] > time.time() + TOKEN_REFRESH_BUFFER:
                self._adopt(cached)
                return

            token_data = self._request_new_token()

            self._token = token_data["auth_token"]
            self._refresh = token_data.get("refresh")
            ttl = self._setting("auth.ttl", DEFAULT_TOKEN_TTL)
            self._expires_at = time.time() + float(ttl)

            self._save_token_to_cache()

            logger.info(f"Taiga token refreshed for {self._setting('taiga.username')}")

    def _request_new_token(self) -> Dict[str, Any]:
        """
        Request a new token from the Taiga auth endpoint.

        Returns:
            The decoded login response (auth_token, refresh, id, ...)
        """
        payload = {
            "type": "normal",
            "username": self._setting("taiga.username"),
            "password": self._setting("taiga.password", ""),
        }
        timeout = float(self._setting("api.timeout", 30))

        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=timeout,
                transport=self.transport,
            ) as client:
                response = client.post(AUTH_ENDPOINT, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach Taiga auth endpoint: {e}") from e

        if response.status_code >= 400:
            raise AuthenticationError(
                "Taiga login failed",
                status_code=response.status_code,
                method="POST",
                url=str(response.request.url),
            )

        try:
            result = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise AuthenticationError(
                "Taiga login response is not valid JSON (check taiga.base_url)",
                status_code=response.status_code,
                method="POST",
                url=str(response.request.url),
                detail=response.text,
            ) from e
        if not isinstance(result, dict) or "auth_token" not in result:
            raise AuthenticationError("Taiga login response carried no auth_token")
        return result

    def _adopt(self, cached: Dict[str, Any]) -> None:
        self._token = cached["token"]
        self._refresh = cached.get("refresh")
        self._expires_at = cached["expires_at"]

    def _load_cached_token(self) -> Optional[Dict[str, Any]]:
        """Load this server/user's token from file cache."""
        try:
            if TOKEN_CACHE_FILE.exists():
                with open(TOKEN_CACHE_FILE, "r") as f:
                    return json.load(f).get(self.cache_key)
        except (json.JSONDecodeError, IOError) as e:
            logger.debug(f"Ignoring unreadable token cache: {e}")
        return None

    def _save_token_to_cache(self) -> None:
        """Save current token to file cache."""
        cache_data: Dict[str, Any] = {}
        try:
            if TOKEN_CACHE_FILE.exists():
                with open(TOKEN_CACHE_FILE, "r") as f:
                    cache_data = json.load(f)
        except (json.JSONDecodeError, IOError):
            cache_data = {}

        cache_data[self.cache_key] = {
            "token": self._token,
            "refresh": self._refresh,
            "expires_at": self._expires_at,
        }

        try:
            with open(TOKEN_CACHE_FILE, "w") as f:
                json.dump(cache_data, f)
        except IOError as e:
            logger.warning(f"Failed to cache token: {e}")

    def _setting(self, key: str, default: Any = None) -> Any:
        if self.config is None:
            return default
        return self.config.get(key, default)

    def invalidate(self) -> None:
        """
        Invalidate current token.

        Forces next request to log in again.
        """
        self._token = None
        self._refresh = None
        self._expires_at = 0

        if not TOKEN_CACHE_FILE.exists():
            return
        with FileLock(str(TOKEN_LOCK_FILE)):
            try:
                with open(TOKEN_CACHE_FILE, "r") as f:
                    cache_data = json.load(f)
            except (json.JSONDecodeError, IOError):
                cache_data = {}
            cache_data.pop(self.cache_key, None)
            with open(TOKEN_CACHE_FILE, "w") as f:
                json.dump(cache_data, f)


__all__ = [
    "TokenManager",
]
