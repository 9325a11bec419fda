"""HTTP client for the Lumination AI API.

Thin JSON-over-HTTP wrapper used by the text extraction client and the
agent chat backend. Every request carries the API key and a fresh
request id; errors are wrapped into the ApiError hierarchy with the URL,
status code and any error/detail field from the response body.
"""

from __future__ import annotations

import uuid
from typing import Any

import requests
import structlog

from coursegen.config.app_config import ApiConfig
from coursegen.llm.errors import (
    ApiConnectionError,
    ApiContentError,
    ApiResponseError,
)

logger = structlog.get_logger(__name__)

REQUEST_ID_PREFIX = "coursegen-"


class ApiClient:
    """Client for JSON endpoints of the AI API."""

    def __init__(
        self,
        config: ApiConfig | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize API client.

        Args:
            config: API settings (defaults if not provided)
            base_url: Override base URL from config
            api_key: Override API key from environment
            session: Optional requests session (connection reuse, testing)
        """
        self.config = config or ApiConfig()
        self.base_url = (base_url or self.config.base_url or "").rstrip("/")
        self.api_key = api_key if api_key is not None else self.config.get_api_key()
        self._session = session or requests.Session()

    def is_configured(self) -> bool:
        """Check that both base URL and API key are set."""
        return bool(self.base_url) and bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "X-API-KEY": self.api_key or "",
            "X-REQUEST-ID": REQUEST_ID_PREFIX + uuid.uuid4().hex[:13],
        }

    def post(self, path: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON response.

        Raises:
            ApiConnectionError: On network failure or timeout
            ApiResponseError: On non-2xx status
            ApiContentError: If the body is not a JSON object
        """
        url = self.base_url + path
        try:
            response = self._session.post(
                url,
                json=data or {},
                headers=self._headers(),
                timeout=(self.config.connect_timeout, self.config.timeout),
            )
        except requests.RequestException as e:
            raise ApiConnectionError(f"Connection error: {e}", url=url) from e

        return self._handle_response(response, url)

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET a resource and return the decoded JSON response."""
        url = self.base_url + path
        try:
            response = self._session.get(
                url,
                params=params or None,
                headers=self._headers(),
                timeout=(self.config.connect_timeout, self.config.timeout),
            )
        except requests.RequestException as e:
            raise ApiConnectionError(f"Connection error: {e}", url=url) from e

        return self._handle_response(response, url)

    def _handle_response(self, response: requests.Response, url: str) -> dict[str, Any]:
        status = response.status_code

        if status < 200 or status >= 300:
            message = f"HTTP {status}"
            detail = _error_detail(response)
            if detail:
                message += f": {detail}"
            logger.warning("api_request_failed", url=url, status=status, detail=detail)
            raise ApiResponseError(message, url=url, status_code=status, detail=detail)

        try:
            decoded = response.json()
        except ValueError as e:
            raise ApiContentError("Invalid JSON response", url=url, status_code=status) from e

        if not isinstance(decoded, dict):
            raise ApiContentError("Invalid JSON response", url=url, status_code=status)

        logger.debug("api_request_ok", url=url, status=status)
        return decoded


def _error_detail(response: requests.Response) -> str | None:
    """Pull the error/detail field out of an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if body.get("error"):
        return str(body["error"])
    if body.get("detail"):
        return str(body["detail"])
    return None
