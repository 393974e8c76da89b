"""
Thin wrappers around the Apps Script API v1 and Sheets API v4 service objects.

Each client is built from google-auth credentials obtained via AuthSession.require_credentials(),
so nothing here runs before authorization has been checked. HttpError from the provider is
re-raised as UpstreamApiError with the decoded error body attached. A refresh token Google no
longer accepts surfaces as AuthorizationRequiredError; transport failures as UpstreamApiError.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from gas_relay.errors import AuthorizationRequiredError, RelayError, UpstreamApiError

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_TITLE = "Container Bound Script"
DEFAULT_SPREADSHEET_TITLE = "New Spreadsheet"

# Raised from execute(): provider errors, token refresh, and the HTTP transport underneath.
_CALL_ERRORS = (HttpError, GoogleAuthError, HttpLib2Error, OSError)


def script_edit_url(script_id: str) -> str:
    return f"https://script.google.com/d/{script_id}/edit"


def _error_details(exc: HttpError) -> Any:
    """Provider error body, decoded when it is JSON."""
    content = exc.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content:
        return None
    try:
        return json.loads(content)
    except ValueError:
        return content


def _upstream_error(exc: HttpError) -> UpstreamApiError:
    message = exc.reason if getattr(exc, "reason", None) else str(exc)
    return UpstreamApiError(message, details=_error_details(exc))


def _relay_error(exc: Exception) -> RelayError:
    if isinstance(exc, HttpError):
        return _upstream_error(exc)
    if isinstance(exc, RefreshError):
        return AuthorizationRequiredError(
            f"Google rejected the stored credentials ({exc}). Please call /mcp/authorize to re-authorize."
        )
    return UpstreamApiError(str(exc) or type(exc).__name__, details={"type": type(exc).__name__})


def _build(name: str, version: str, credentials: Credentials) -> Any:
    return build(name, version, credentials=credentials, cache_discovery=False)


class ScriptClient:
    """Apps Script API: create projects, replace their files, run functions."""

    def __init__(self, credentials: Credentials) -> None:
        self._svc = _build("script", "v1", credentials)

    def create_project(self, parent_id: str, title: str | None = None) -> dict[str, Any]:
        """Create a script project bound to the Drive file parent_id (e.g. a spreadsheet)."""
        body = {"title": title or DEFAULT_SCRIPT_TITLE, "parentId": parent_id}
        logger.debug("Apps Script projects.create request: %s", body)
        try:
            project = self._svc.projects().create(body=body).execute()
        except _CALL_ERRORS as exc:
            logger.error("Script creation failed for parent %s: %s", parent_id, exc)
            raise _relay_error(exc) from exc
        logger.info("Container bound script created: %s (parent %s)", project.get("scriptId"), parent_id)
        return project

    def update_content(self, script_id: str, files: list[dict[str, Any]]) -> dict[str, Any]:
        """Replace every file of the project with files."""
        try:
            content = self._svc.projects().updateContent(scriptId=script_id, body={"files": files}).execute()
        except _CALL_ERRORS as exc:
            logger.error("Script update failed for %s: %s", script_id, exc)
            raise _relay_error(exc) from exc
        logger.info("Script content updated: %s (%d file(s))", script_id, len(files))
        return content

    def run(self, script_id: str, function: str, parameters: list[Any] | None = None) -> dict[str, Any]:
        """
        Execute function in the script's API-executable deployment.
        The returned Operation carries either "response" or "error" (a script-side exception).
        """
        body = {"function": function, "parameters": parameters or []}
        try:
            operation = self._svc.scripts().run(scriptId=script_id, body=body).execute()
        except _CALL_ERRORS as exc:
            logger.error("Script execution failed for %s.%s: %s", script_id, function, exc)
            raise _relay_error(exc) from exc
        if "error" in operation:
            logger.warning("Script %s.%s raised: %s", script_id, function, operation["error"])
        else:
            logger.info("Script executed: %s.%s", script_id, function)
        return operation


class SheetsClient:
    """Sheets API: spreadsheet creation only."""

    def __init__(self, credentials: Credentials) -> None:
        self._svc = _build("sheets", "v4", credentials)

    def create_spreadsheet(self, title: str | None = None) -> dict[str, Any]:
        body = {"properties": {"title": title or DEFAULT_SPREADSHEET_TITLE}}
        try:
            spreadsheet = self._svc.spreadsheets().create(body=body).execute()
        except _CALL_ERRORS as exc:
            logger.error("Spreadsheet creation failed: %s", exc)
            raise _relay_error(exc) from exc
        logger.info("Spreadsheet created: %s", spreadsheet.get("spreadsheetId"))
        return spreadsheet
