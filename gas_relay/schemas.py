"""Pydantic models for the relay's HTTP API. Wire names are camelCase; attributes are snake_case."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _fold_alias(data: Any, canonical: str, alternative: str) -> Any:
    """Copy data[alternative] into data[canonical] when only the alternative name was sent."""
    if isinstance(data, dict) and not data.get(canonical) and data.get(alternative):
        data = {**data, canonical: data[alternative]}
    return data


class CreateContainerBoundScriptRequest(_CamelModel):
    """Bound-script creation. Accepts "parentId" or "spreadsheetId" for the container."""

    parent_id: str | None = Field(None, description="Drive file ID of the container (spreadsheet, doc, ...)")
    title: str | None = Field(None, description="Script project title")

    @model_validator(mode="before")
    @classmethod
    def _accept_spreadsheet_id(cls, data: Any) -> Any:
        return _fold_alias(data, "parentId", "spreadsheetId")


class ScriptFile(BaseModel):
    """One Apps Script project file (see projects.updateContent)."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: str
    source: str | None = None


class UpdateScriptContentRequest(_CamelModel):
    script_id: str | None = None
    files: list[ScriptFile] | None = None


class RunScriptRequest(_CamelModel):
    """Function invocation. Accepts "functionName" or "function"."""

    script_id: str | None = None
    function_name: str | None = None
    parameters: list[Any] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_function(cls, data: Any) -> Any:
        data = _fold_alias(data, "functionName", "function")
        if isinstance(data, dict) and data.get("parameters") is None:
            data = {**data, "parameters": []}
        return data


class CreateSpreadsheetRequest(_CamelModel):
    title: str | None = None


class TokenRequest(_CamelModel):
    """Manual token entry: an authorization code to exchange, or tokens issued elsewhere."""

    code: str | None = None
    refresh_token: str | None = None
    access_token: str | None = None


class HealthResponse(_CamelModel):
    status: str = "OK"
    timestamp: str
    environment: str
    port: int
    has_auth: bool
    has_refresh_token: bool
    auth_status: str
    version: str


class AuthorizeResponse(_CamelModel):
    success: bool = True
    auth_url: str
    message: str = "Please visit this URL to complete OAuth authorization"
    instructions: str = (
        "Complete consent in the browser; the callback stores the tokens. "
        "Alternatively POST the authorization code to /oauth/token."
    )


class TokenResponse(_CamelModel):
    success: bool = True
    auth_status: str
    has_refresh_token: bool


class ContainerBoundScriptResponse(_CamelModel):
    success: bool = True
    script_id: str
    url: str
    parent_id: str
    container_bound: bool = True


class UpdateScriptContentResponse(_CamelModel):
    success: bool = True
    result: Any = None


class RunScriptResponse(_CamelModel):
    success: bool = True
    result: Any = Field(None, description="Full execution Operation as returned by scripts.run")
    response: Any = Field(None, description="The Operation's response field (function return value)")


class SpreadsheetResponse(_CamelModel):
    success: bool = True
    spreadsheet_id: str
    url: str | None = None
