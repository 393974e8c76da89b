"""
One-time OAuth from a terminal, for deployments where the callback URL is not reachable.

Prints the consent URL, reads back the authorization code (or the whole redirect URL the
browser ended on), exchanges it, and prints the refresh token to put in GOOGLE_REFRESH_TOKEN.

  gas-mcp-authorize            # prompt for the code
  gas-mcp-authorize --save     # also write tokens to GOOGLE_TOKENS_FILE (tokens.json)
"""
from __future__ import annotations

import argparse
import sys
from urllib.parse import parse_qs, urlparse

from gas_relay.errors import RelayError
from gas_relay.google_oauth import AuthSession
from gas_relay.token_store import FileTokenStore


def _extract_code(raw: str) -> str:
    """Accept a bare code or the redirect URL containing ?code=..."""
    raw = raw.strip()
    if raw.startswith(("http://", "https://")):
        return (parse_qs(urlparse(raw).query).get("code") or [""])[0]
    return raw


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Authorize the GAS MCP relay with Google and print the refresh token.")
    parser.add_argument("--code", help="Authorization code (skips the prompt)")
    parser.add_argument("--save", action="store_true", help="Write the tokens to GOOGLE_TOKENS_FILE")
    args = parser.parse_args(argv)

    # Stored tokens are irrelevant here; we are minting new ones.
    session = AuthSession(token_stores=[])
    try:
        url = session.authorization_url()
        if not args.code:
            print("Open this URL in a browser and grant access:\n")
            print(f"  {url}\n")
        raw = args.code or input("Paste the authorization code (or the full redirect URL): ")
        credentials = session.exchange_code(_extract_code(raw))
    except KeyboardInterrupt:
        print("\nInterrupted. Run again when ready to complete OAuth.")
        return 1
    except RelayError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if credentials.refresh_token:
        print("\nRefresh token (save as GOOGLE_REFRESH_TOKEN):")
        print(credentials.refresh_token)
    else:
        print(
            "\nNo refresh token was returned. Revoke the app's access in your Google account and run again.",
            file=sys.stderr,
        )
    if args.save:
        store = FileTokenStore()
        store.save(credentials)
        print(f"Tokens written to {store.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
