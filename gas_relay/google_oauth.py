"""Google OAuth for the relay: client identity, authorization URL, code exchange, credential state."""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from gas_relay import env as env_loader
from gas_relay.errors import (
    AuthorizationRequiredError,
    ConfigurationError,
    MissingCodeError,
    TokenExchangeError,
)
from gas_relay.token_store import CredentialSet, FileTokenStore, TokenStore, default_token_stores

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/drive.scripts",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/script.projects",
]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
CALLBACK_PATH = "/oauth/callback"


class AuthStatus(str, Enum):
    READY = "Ready"
    PARTIAL = "Partial"
    NOT_AUTHENTICATED = "Not Authenticated"


@dataclass(frozen=True)
class ClientIdentity:
    """OAuth client (id, secret, redirect URI) this process authorizes as."""

    client_id: str
    client_secret: str
    redirect_uri: str
    client_type: str = "web"
    auth_uri: str = AUTH_URI
    token_uri: str = TOKEN_URI

    def client_config(self) -> dict:
        """Client-secrets structure as google_auth_oauthlib expects it."""
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.redirect_uri],
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }


def resolve_redirect_uri() -> str:
    """GOOGLE_REDIRECT_URI if set, else the callback under the platform base URL."""
    return env_loader.google_redirect_uri() or f"{env_loader.base_url()}{CALLBACK_PATH}"


def _read_client_secrets() -> tuple[dict, str]:
    """Return (parsed client-secrets JSON, where it came from)."""
    blob = env_loader.google_credentials_json()
    if blob:
        try:
            return json.loads(blob), "GOOGLE_CREDENTIALS_JSON"
        except ValueError as e:
            raise ConfigurationError(f"GOOGLE_CREDENTIALS_JSON is not valid JSON: {e}") from e

    client_id = env_loader.google_client_id()
    client_secret = env_loader.google_client_secret()
    if client_id or client_secret:
        return {"web": {"client_id": client_id, "client_secret": client_secret}}, "GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET"

    path = env_loader.google_credentials_file()
    logger.info("GOOGLE_CREDENTIALS_JSON not set, checking %s", path)
    try:
        return json.loads(path.read_text()), str(path)
    except FileNotFoundError as e:
        raise ConfigurationError(
            "No OAuth client credentials found. Set GOOGLE_CREDENTIALS_JSON "
            f"(or GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET), or provide {path}."
        ) from e
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read OAuth client credentials from {path}: {e}") from e


def load_client_identity() -> ClientIdentity:
    """
    Resolve the OAuth client identity: environment first, then the local credentials file.
    Raises ConfigurationError when no usable identity is found.
    """
    data, source = _read_client_secrets()
    if not isinstance(data, dict):
        raise ConfigurationError("Invalid credentials format. Expected \"installed\" or \"web\" configuration.")
    client_type = "installed" if "installed" in data else "web" if "web" in data else None
    if client_type is None or not isinstance(data[client_type], dict):
        raise ConfigurationError("Invalid credentials format. Expected \"installed\" or \"web\" configuration.")
    config = data[client_type]
    client_id = (config.get("client_id") or "").strip()
    client_secret = (config.get("client_secret") or "").strip()
    if not client_id or not client_secret:
        raise ConfigurationError(f"OAuth client credentials from {source} need both client_id and client_secret.")
    logger.info("Credentials loaded from %s (type=%s, client_id=%s)", source, client_type, client_id)
    return ClientIdentity(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=resolve_redirect_uri(),
        client_type=client_type,
        auth_uri=config.get("auth_uri") or AUTH_URI,
        token_uri=config.get("token_uri") or TOKEN_URI,
    )


def _expiry_from_token(token: dict) -> datetime | None:
    expires_at = token.get("expires_at")
    if not expires_at:
        return None
    return datetime.fromtimestamp(float(expires_at), tz=timezone.utc).replace(tzinfo=None)


class AuthSession:
    """
    One OAuth client identity plus one credential set, shared by every request handler.

    Create a single instance per process and pass it to the handlers; tests can build one
    with fabricated credentials via set_credentials().
    """

    def __init__(
        self,
        token_stores: Sequence[TokenStore] | None = None,
        persist_store: TokenStore | None = None,
    ) -> None:
        self.token_stores = list(token_stores) if token_stores is not None else default_token_stores()
        self.persist_store = persist_store
        self.identity: ClientIdentity | None = None
        self._flow: Flow | None = None
        self._credentials: CredentialSet | None = None
        self._google_credentials: Credentials | None = None
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._flow is not None

    @property
    def credentials(self) -> CredentialSet | None:
        return self._credentials

    def initialize(self) -> ClientIdentity:
        """Resolve the client identity, build the OAuth flow and load any stored tokens."""
        with self._init_lock:
            identity = load_client_identity()
            flow = self._make_flow(identity, SCOPES)
            self.identity = identity
            self._flow = flow
            self._google_credentials = None
            logger.info("OAuth2 client initialized with redirect: %s", identity.redirect_uri)
        self.load_tokens()
        return identity

    def _ensure_initialized(self) -> Flow:
        if self._flow is None:
            self.initialize()
        return self._flow

    @staticmethod
    def _make_flow(identity: ClientIdentity, scopes: Sequence[str]) -> Flow:
        # Google may grant the scopes in a different set than requested (e.g. drive implies drive.scripts)
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
        # No PKCE: the code may be exchanged by a different flow instance (or after a restart).
        return Flow.from_client_config(
            identity.client_config(),
            scopes=list(scopes),
            redirect_uri=identity.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def load_tokens(self) -> bool:
        """Apply the first credential set found in the token stores. Absence is not an error."""
        for store in self.token_stores:
            try:
                found = store.load()
            except Exception as e:
                logger.warning("Could not load tokens from %s: %s", store.name, e)
                continue
            if found is not None and not found.is_empty:
                self.set_credentials(found)
                logger.info("Tokens loaded from %s", store.name)
                return True
        logger.info("No saved tokens found")
        return False

    def set_credentials(self, credentials: CredentialSet) -> None:
        self._credentials = credentials
        self._google_credentials = None

    def authorization_url(self, scopes: Sequence[str] = SCOPES) -> str:
        """Consent URL with offline access so Google issues a refresh token."""
        flow = self._ensure_initialized()
        if list(scopes) != SCOPES:
            flow = self._make_flow(self.identity, scopes)
        url, _state = flow.authorization_url(access_type="offline", prompt="consent")
        logger.info("Generated auth URL for %d scope(s)", len(scopes))
        return url

    def exchange_code(self, code: str | None) -> CredentialSet:
        """Exchange a one-time authorization code for tokens and make them current."""
        if not code:
            raise MissingCodeError()
        flow = self._ensure_initialized()
        try:
            token = flow.fetch_token(code=code)
        except Exception as e:
            logger.error("OAuth token exchange failed: %s", e)
            raise TokenExchangeError(str(e)) from e

        credentials = CredentialSet(
            access_token=token.get("access_token"),
            refresh_token=token.get("refresh_token"),
            expiry=_expiry_from_token(token),
        )
        self.set_credentials(credentials)
        logger.info(
            "OAuth tokens received successfully. Refresh token: %s",
            "present" if credentials.refresh_token else "missing",
        )
        if self.persist_store is not None:
            try:
                self.persist_store.save(credentials)
            except OSError as e:
                logger.warning("Could not persist OAuth tokens to %s: %s", self.persist_store.name, e)
        return credentials

    def status(self) -> AuthStatus:
        if self._credentials is None or self._credentials.is_empty:
            return AuthStatus.NOT_AUTHENTICATED
        if self._credentials.refresh_token:
            return AuthStatus.READY
        return AuthStatus.PARTIAL

    @property
    def has_credentials(self) -> bool:
        return self.status() is not AuthStatus.NOT_AUTHENTICATED

    @property
    def has_refresh_token(self) -> bool:
        return self.status() is AuthStatus.READY

    def require_credentials(self) -> Credentials:
        """
        google-auth credentials for API clients. google-auth refreshes the access token
        itself when a refresh token is present.
        Raises AuthorizationRequiredError when nothing has been authorized yet.
        """
        if not self.has_credentials:
            raise AuthorizationRequiredError()
        if self._google_credentials is None:
            identity = self.identity
            self._google_credentials = Credentials(
                token=self._credentials.access_token,
                refresh_token=self._credentials.refresh_token,
                token_uri=identity.token_uri if identity else TOKEN_URI,
                client_id=identity.client_id if identity else None,
                client_secret=identity.client_secret if identity else None,
                scopes=SCOPES,
                expiry=self._credentials.expiry,
            )
        return self._google_credentials


def create_auth_session() -> AuthSession:
    """Session wired to the configured token stores; persists exchanged tokens only when opted in."""
    persist_store = FileTokenStore() if env_loader.persist_tokens() else None
    return AuthSession(persist_store=persist_store)
