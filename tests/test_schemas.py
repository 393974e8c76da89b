# Tests for gas_relay/schemas.py: parameter-name normalization and wire shapes.

from gas_relay.schemas import (
    ContainerBoundScriptResponse,
    CreateContainerBoundScriptRequest,
    HealthResponse,
    RunScriptRequest,
    TokenRequest,
    UpdateScriptContentRequest,
)


class TestCreateContainerBoundScriptRequest:
    def test_parent_id(self):
        req = CreateContainerBoundScriptRequest.model_validate({"parentId": "abc123", "title": "Tools"})
        assert req.parent_id == "abc123"
        assert req.title == "Tools"

    def test_spreadsheet_id_is_folded_into_parent_id(self):
        req = CreateContainerBoundScriptRequest.model_validate({"spreadsheetId": "sheet-1"})
        assert req.parent_id == "sheet-1"

    def test_parent_id_wins(self):
        req = CreateContainerBoundScriptRequest.model_validate({"parentId": "p", "spreadsheetId": "s"})
        assert req.parent_id == "p"

    def test_empty(self):
        req = CreateContainerBoundScriptRequest.model_validate({})
        assert req.parent_id is None
        assert req.title is None


class TestRunScriptRequest:
    def test_function_name(self):
        req = RunScriptRequest.model_validate({"scriptId": "s", "functionName": "main", "parameters": [1]})
        assert req.script_id == "s"
        assert req.function_name == "main"
        assert req.parameters == [1]

    def test_function_alias(self):
        req = RunScriptRequest.model_validate({"scriptId": "s", "function": "doGet"})
        assert req.function_name == "doGet"
        assert req.parameters == []

    def test_function_name_wins(self):
        req = RunScriptRequest.model_validate({"functionName": "a", "function": "b"})
        assert req.function_name == "a"

    def test_null_parameters(self):
        assert RunScriptRequest.model_validate({"parameters": None}).parameters == []


def test_update_request_keeps_extra_file_fields():
    req = UpdateScriptContentRequest.model_validate({
        "scriptId": "s",
        "files": [{"name": "appsscript", "type": "JSON", "source": "{}", "functionSet": {"values": []}}],
    })
    dumped = req.files[0].model_dump(exclude_none=True)
    assert dumped == {"name": "appsscript", "type": "JSON", "source": "{}", "functionSet": {"values": []}}


def test_token_request_accepts_both_spellings():
    assert TokenRequest.model_validate({"refreshToken": "r"}).refresh_token == "r"
    assert TokenRequest.model_validate({"refresh_token": "r"}).refresh_token == "r"


def test_response_wire_names():
    body = ContainerBoundScriptResponse(script_id="s1", url="https://script.google.com/d/s1/edit", parent_id="p")
    assert body.model_dump(by_alias=True) == {
        "success": True,
        "scriptId": "s1",
        "url": "https://script.google.com/d/s1/edit",
        "parentId": "p",
        "containerBound": True,
    }
    health = HealthResponse(
        timestamp="t", environment="development", port=3001,
        has_auth=False, has_refresh_token=False, auth_status="Not Authenticated", version="v",
    )
    assert set(health.model_dump(by_alias=True)) == {
        "status", "timestamp", "environment", "port", "hasAuth", "hasRefreshToken", "authStatus", "version",
    }
