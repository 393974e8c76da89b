# Tests for gas_relay/authorize_cli.py

import json
from unittest.mock import patch

import pytest
from google_auth_oauthlib.flow import Flow

from gas_relay.authorize_cli import _extract_code, main

TOKEN = {"access_token": "ya29.cli", "refresh_token": "1//cli-refresh"}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("4/plain-code", "4/plain-code"),
        ("  4/padded  ", "4/padded"),
        ("http://localhost:3001/oauth/callback?code=4%2Ffrom-url&scope=x", "4/from-url"),
        ("https://relay.example.com/oauth/callback?error=access_denied", ""),
    ],
)
def test_extract_code(raw, expected):
    assert _extract_code(raw) == expected


def test_code_argument(client_env, capsys):
    with patch.object(Flow, "fetch_token", return_value=TOKEN) as fetch_token:
        assert main(["--code", "4/abc"]) == 0
    fetch_token.assert_called_once_with(code="4/abc")
    assert "1//cli-refresh" in capsys.readouterr().out


def test_prompt(client_env, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: "http://localhost:3001/oauth/callback?code=4/pasted")
    with patch.object(Flow, "fetch_token", return_value=TOKEN) as fetch_token:
        assert main([]) == 0
    fetch_token.assert_called_once_with(code="4/pasted")
    out = capsys.readouterr().out
    assert "https://accounts.google.com/" in out
    assert "1//cli-refresh" in out


def test_save_writes_token_file(client_env, tmp_path):
    with patch.object(Flow, "fetch_token", return_value=TOKEN):
        assert main(["--code", "4/abc", "--save"]) == 0
    saved = json.loads((tmp_path / "tokens.json").read_text())
    assert saved["refresh_token"] == "1//cli-refresh"


def test_missing_refresh_token_warns(client_env, capsys):
    with patch.object(Flow, "fetch_token", return_value={"access_token": "ya29.only"}):
        assert main(["--code", "4/abc"]) == 0
    assert "No refresh token" in capsys.readouterr().err


def test_unconfigured(capsys):
    assert main(["--code", "4/abc"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_exchange_failure(client_env, capsys):
    with patch.object(Flow, "fetch_token", side_effect=Exception("invalid_grant")):
        assert main(["--code", "4/abc"]) == 1
    assert "invalid_grant" in capsys.readouterr().err


def test_empty_code(client_env, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert main([]) == 1
    assert "Authorization code not provided" in capsys.readouterr().err
