"""Load configuration from the environment, with .env as a fallback for local runs."""
from __future__ import annotations

import os
from pathlib import Path

# Load .env from project root (parent of gas_relay/) so it works when running from project root
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.is_file():
    from dotenv import load_dotenv
    load_dotenv(_env_path, override=False)

DEFAULT_PORT = 3001
VERSION = "v2-fixed"


def _get(key: str) -> str:
    return os.environ.get(key, "").strip()


def _flag(key: str) -> bool:
    return _get(key).lower() in ("1", "true", "yes", "on")


def port() -> int:
    """PORT: HTTP listen port (Railway/Render set it)."""
    v = _get("PORT")
    try:
        return int(v) if v else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT


def environment() -> str:
    """APP_ENV (or NODE_ENV for existing deployments): label shown on /health."""
    return _get("APP_ENV") or _get("NODE_ENV") or "development"


def log_level() -> str:
    return _get("LOG_LEVEL").upper() or "INFO"


def google_credentials_json() -> str | None:
    """GOOGLE_CREDENTIALS_JSON: full client-secrets JSON blob downloaded from Cloud Console."""
    v = _get("GOOGLE_CREDENTIALS_JSON")
    return v or None


def google_client_id() -> str | None:
    v = _get("GOOGLE_CLIENT_ID")
    return v or None


def google_client_secret() -> str | None:
    v = _get("GOOGLE_CLIENT_SECRET")
    return v or None


def google_credentials_file() -> Path:
    """Local client-secrets file used when nothing is set in the environment."""
    return Path(_get("GOOGLE_CREDENTIALS_FILE") or "client_credentials.json")


def google_redirect_uri() -> str | None:
    """Explicit OAuth redirect URI; overrides the one derived from the platform URL."""
    v = _get("GOOGLE_REDIRECT_URI")
    return v or None


def google_refresh_token() -> str | None:
    v = _get("GOOGLE_REFRESH_TOKEN")
    return v or None


def google_access_token() -> str | None:
    v = _get("GOOGLE_ACCESS_TOKEN")
    return v or None


def google_tokens_file() -> Path:
    return Path(_get("GOOGLE_TOKENS_FILE") or "tokens.json")


def persist_tokens() -> bool:
    """GOOGLE_PERSIST_TOKENS: also write newly exchanged tokens to the tokens file."""
    return _flag("GOOGLE_PERSIST_TOKENS")


def railway_static_url() -> str | None:
    v = _get("RAILWAY_STATIC_URL")
    return v or None


def render_external_url() -> str | None:
    v = _get("RENDER_EXTERNAL_URL")
    return v or None


def platform() -> str:
    """Deployment platform inferred from its URL hint: Railway, Render or Local."""
    if railway_static_url():
        return "Railway"
    if render_external_url():
        return "Render"
    return "Local"


def base_url() -> str:
    """Public base URL of this server: Railway host, then Render URL, then localhost."""
    railway = railway_static_url()
    if railway:
        return f"https://{railway}"
    render = render_external_url()
    if render:
        return render.rstrip("/")
    return f"http://localhost:{port()}"
