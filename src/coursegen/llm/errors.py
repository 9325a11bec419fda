"""Errors raised by upstream AI service calls."""

from __future__ import annotations


class ApiError(Exception):
    """Error during an upstream API interaction."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.detail = detail


class ApiConnectionError(ApiError):
    """Network failure or timeout reaching the API."""

    pass


class ApiResponseError(ApiError):
    """API answered with a non-2xx status."""

    pass


class ApiContentError(ApiError):
    """API answered 2xx but the body is unusable (invalid JSON, missing field)."""

    pass
