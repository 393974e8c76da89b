"""Relay error taxonomy. Each error knows the HTTP status it maps to."""
from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for errors surfaced to the caller as {"success": false, ...}."""

    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message}
        body.update(self.extra)
        return body


class InvalidRequestError(RelayError):
    """Caller omitted a required field."""

    status_code = 400


class MissingCodeError(RelayError):
    status_code = 400

    def __init__(self, message: str = "Authorization code not provided. Please try the authorization process again.") -> None:
        super().__init__(message)


class AuthorizationRequiredError(RelayError):
    status_code = 401

    def __init__(self, message: str = "OAuth authorization required. Please call /mcp/authorize first.") -> None:
        super().__init__(message)


class ConfigurationError(RelayError):
    """Missing or malformed OAuth client identity."""

    status_code = 500


class TokenExchangeError(RelayError):
    """Google rejected the authorization code (or the token endpoint was unreachable)."""

    status_code = 500


class UpstreamApiError(RelayError):
    """Apps Script / Sheets API error; provider details are passed through verbatim."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.details = details
