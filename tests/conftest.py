import pytest
from fastapi.testclient import TestClient

from gas_relay.google_oauth import AuthSession
from gas_relay.main import create_app
from gas_relay.token_store import CredentialSet

_ENV_KEYS = [
    "PORT",
    "APP_ENV",
    "NODE_ENV",
    "LOG_LEVEL",
    "GOOGLE_CREDENTIALS_JSON",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_CREDENTIALS_FILE",
    "GOOGLE_REDIRECT_URI",
    "GOOGLE_REFRESH_TOKEN",
    "GOOGLE_ACCESS_TOKEN",
    "GOOGLE_TOKENS_FILE",
    "GOOGLE_PERSIST_TOKENS",
    "RAILWAY_STATIC_URL",
    "RENDER_EXTERNAL_URL",
]

CLIENT_ID = "test-client-id.apps.googleusercontent.com"
CLIENT_SECRET = "test-client-secret"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """No real configuration leaks in; default credential/token files resolve under tmp_path."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def client_env(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", CLIENT_ID)
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", CLIENT_SECRET)


@pytest.fixture
def session():
    return AuthSession(token_stores=[])


@pytest.fixture
def authorized_session(session):
    session.set_credentials(CredentialSet(access_token="ya29.test", refresh_token="1//refresh-test"))
    return session


@pytest.fixture
def client(session):
    return TestClient(create_app(session, initialize_auth=False))
