"""
================================================================================
Taiga HTTP Transport with Allure Integration
================================================================================

The transport every Taiga resource client talks through:
    - Authenticated requests via TokenManager
    - JSON decoding of successful responses (None for empty bodies)
    - Status-code mapping onto the Taiga error taxonomy
    - Comprehensive Allure reporting with cURL command generation
    - Sensitive header/body redaction before anything is reported

Requests are issued once. A network failure or error status surfaces
to the caller immediately.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import allure
import httpx
from allure_commons.types import AttachmentType
from loguru import logger

from .config_loader import ConfigLoader
from .errors import TransportError, error_for_status
from .token_manager import TokenManager


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

DEFAULT_TIMEOUT = 30

SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "set-cookie"}
SENSITIVE_FIELDS = ["password", "secret", "token", "api_key", "authorization", "refresh"]


class HttpClient:
    """
    Authenticated JSON transport for the Taiga REST API.

    Usage:
        >>> config = ConfigLoader()
        >>> with HttpClient(config) as client:
        ...     epics = client.get("/epics", params={"project": 1})
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize HTTP client with configuration.

        Args:
            config: Configuration loader instance. Creates new one if None.
            transport: Optional httpx transport (tests mount an in-memory
                       Taiga here).
        """
        if config is None:
            config = ConfigLoader()

        self.config = config
        self.transport = transport
        self.token_manager = TokenManager(config, transport=transport)
        self.base_url = self.token_manager.base_url
        self.timeout = int(config.get("api.timeout", DEFAULT_TIMEOUT))

        self.session: Optional[httpx.Client] = None

    def __enter__(self) -> "HttpClient":
        """Enter context manager - initialize HTTP session."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - close HTTP session."""
        self.close()

    def open(self) -> None:
        if self.session is None:
            self.session = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
                headers={"Accept": "application/json"},
            )

    def close(self) -> None:
        if self.session:
            self.session.close()
            self.session = None

    def request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """
        Execute an authenticated request and decode the response.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            url: Request path (relative to the API base URL)
            **kwargs: Additional arguments passed to httpx (json, params)

        Returns:
            Decoded JSON payload, or None for an empty body

        Raises:
            TransportError: Network failure, 5xx or client not opened
            AuthenticationError: 401/403
            ValidationError: 400/422
            NotFoundError: 404
            ConflictError: 409
        """
        if self.session is None:
            raise TransportError(
                "HttpClient must be used within a context manager. "
                "Use 'with HttpClient() as client:'"
            )

        headers = kwargs.pop("headers", {})
        headers = self.token_manager.apply(headers)
        kwargs["headers"] = headers

        if "params" in kwargs and kwargs["params"]:
            kwargs["params"] = {
                k: v for k, v in kwargs["params"].items() if v is not None
            }

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(
                f"Request failed: {e}", method=method, url=url
            ) from e

        self._log_to_allure(method, url, kwargs, response)
        return self._decode(method, url, response)

    def get(self, url: str, **kwargs: Any) -> Any:
        """Execute GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        """Execute POST request."""
        return self.request("POST", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> Any:
        """Execute PATCH request."""
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Any:
        """Execute DELETE request."""
        return self.request("DELETE", url, **kwargs)

    def _decode(self, method: str, url: str, response: httpx.Response) -> Any:
        """
        Turn a response into a payload or the matching TaigaError.
        """
        try:
            payload = response.json() if response.content else None
        except (json.JSONDecodeError, ValueError):
            payload = None
            if response.status_code < 400:
                raise TransportError(
                    "Response body is not valid JSON",
                    status_code=response.status_code,
                    method=method,
                    url=url,
                    detail=response.text,
                )

        if response.status_code < 400:
            return payload

        message = f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("_error_message"):
            message = str(payload["_error_message"])

        error_cls = error_for_status(response.status_code)
        logger.error(f"{method} {url} -> {response.status_code}: {message}")
        raise error_cls(
            message,
            status_code=response.status_code,
            method=method,
            url=url,
            detail=payload if payload is not None else response.text,
        )

    def _log_to_allure(
        self,
        method: str,
        url: str,
        kwargs: Dict[str, Any],
        response: httpx.Response,
    ) -> None:
        """
        Log HTTP request/response to Allure report.

        Attaches:
            - Request URL with query parameters
            - Request headers
            - Request body (if present)
            - cURL command for reproduction
            - Response status
            - Response body (truncated if too long)
        """
        full_url = str(response.request.url)
        params = kwargs.get("params")

        status_mark = "OK" if response.status_code < 400 else "FAIL"
        step_title = f"[{status_mark}] {method} {url} -> {response.status_code}"

        with allure.step(step_title):
            allure.attach(
                full_url,
                name="Request URL",
                attachment_type=AttachmentType.TEXT
            )

            headers = kwargs.get("headers", {})
            safe_headers = self._redact_headers(headers)
            if safe_headers:
                allure.attach(
                    json.dumps(safe_headers, ensure_ascii=False, indent=2),
                    name="Request Headers",
                    attachment_type=AttachmentType.JSON
                )

            body = kwargs.get("json")
            safe_body = self._redact_body(body)
            if safe_body:
                allure.attach(
                    json.dumps(safe_body, ensure_ascii=False, indent=2),
                    name="Request Body",
                    attachment_type=AttachmentType.JSON
                )

            if params:
                allure.attach(
                    json.dumps(params, ensure_ascii=False, indent=2),
                    name="Query Params",
                    attachment_type=AttachmentType.JSON
                )

            curl_cmd = self._build_curl(method, full_url, safe_headers, safe_body)
            allure.attach(
                curl_cmd,
                name="cURL Command",
                attachment_type=AttachmentType.TEXT
            )

            allure.attach(
                f"{status_mark} {response.status_code}",
                name="Response Status",
                attachment_type=AttachmentType.TEXT
            )

            try:
                response_content = json.dumps(
                    response.json(), ensure_ascii=False, indent=2
                )
            except (json.JSONDecodeError, ValueError):
                response_content = response.text or "<empty>"

            if len(response_content) > MAX_RESPONSE_LENGTH:
                response_content = (
                    f"{response_content[:MAX_RESPONSE_LENGTH]}\n\n"
                    f"... [Truncated, full length: {len(response_content)} chars] ..."
                )

            allure.attach(
                response_content,
                name="Response Body",
                attachment_type=AttachmentType.JSON
            )

    def _redact_headers(self, headers: Dict[str, Any]) -> Dict[str, Any]:
        """
        Mask sensitive header values before logging.
        """
        masked = {}
        for key, value in headers.items():
            if key.lower() in SENSITIVE_HEADERS:
                masked[key] = "***MASKED***"
            else:
                masked[key] = value
        return masked

    def _redact_body(self, payload: Any) -> Any:
        """
        Recursively mask sensitive fields in request bodies.
        """
        if isinstance(payload, dict):
            redacted = {}
            for key, value in payload.items():
                if any(token in key.lower() for token in SENSITIVE_FIELDS):
                    redacted[key] = "***MASKED***"
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload

    def _build_curl(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]],
    ) -> str:
        """
        Build cURL command for request reproduction.

        Headers passed in are expected to be redacted already.
        """
        parts = [f"curl -X {method}"]

        for key, value in headers.items():
            parts.append(f"-H '{key}: {value}'")

        if body:
            body_json = json.dumps(body, ensure_ascii=False)
            parts.append(f"-d '{body_json}'")

        parts.append(f"'{url}'")

        return " \\\n  ".join(parts)


__all__ = [
    "HttpClient",
]
