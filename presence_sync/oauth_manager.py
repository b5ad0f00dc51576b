"""
Tool: OAuth Manager
Purpose: App-only (client credentials) tokens for Microsoft Graph

Handles:
- Token acquisition against the tenant's v2.0 token endpoint
- Failure mapping to AuthError (fatal to the pass)

Token expiry mid-pass is not handled: a pass acquires one token up front and
reuses it for every request.

Usage:
    python -m presence_sync.oauth_manager --action token
    python -m presence_sync.oauth_manager --action token --config args/presence_sync.yaml

Dependencies:
    - httpx (pip install httpx)
    - pyyaml (pip install pyyaml)
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import httpx

from presence_sync.errors import AuthError, ConfigError
from presence_sync.models import TokenGrant

logger = logging.getLogger(__name__)


# OAuth endpoints
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


def acquire_token(
    app_id: str,
    tenant_id: str,
    app_secret: str,
    http_client: httpx.Client | None = None,
    token_url: str = MICROSOFT_TOKEN_URL,
    scope: str = GRAPH_DEFAULT_SCOPE,
    timeout: float = 30.0,
) -> TokenGrant:
    """
    Exchange app credentials for a Graph bearer token.

    Args:
        app_id: Application (client) ID
        tenant_id: Directory (tenant) ID
        app_secret: Client secret
        http_client: Optional client to reuse (tests pass a mocked transport)
        token_url: Token endpoint template with a {tenant} placeholder
        scope: Requested scope
        timeout: Request timeout in seconds

    Returns:
        TokenGrant with the access token and its lifetime

    Raises:
        AuthError: On network failure, non-200 status or a payload without a token
    """
    url = token_url.format(tenant=tenant_id)
    token_data = {
        "client_id": app_id,
        "client_secret": app_secret,
        "scope": scope,
        "grant_type": "client_credentials",
    }

    try:
        if http_client is not None:
            resp = http_client.post(url, data=token_data)
        else:
            with httpx.Client(timeout=timeout) as client:
                resp = client.post(url, data=token_data)
    except httpx.HTTPError as e:
        raise AuthError(f"Token request failed: {e!s}") from e

    if resp.status_code != 200:
        raise AuthError(f"Token request failed: HTTP {resp.status_code} {_error_description(resp)}")

    try:
        tokens = resp.json()
    except ValueError as e:
        raise AuthError("Token response was not JSON") from e

    access_token = tokens.get("access_token") if isinstance(tokens, dict) else None
    if not access_token:
        raise AuthError("Token response did not contain an access_token")

    logger.info(f"Acquired Graph token for tenant {tenant_id}")
    return TokenGrant(
        access_token=access_token,
        expires_in=int(tokens.get("expires_in", 3600)),
        acquired_at=datetime.now(timezone.utc),
    )


def _error_description(resp: httpx.Response) -> str:
    """Pull the AAD error_description out of a failed token response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict):
        return data.get("error_description") or data.get("error") or ""
    return ""


def main():
    from presence_sync.config_models import load_config

    parser = argparse.ArgumentParser(description="Graph OAuth Manager")
    parser.add_argument("--action", required=True, choices=["token"], help="Action to perform")
    parser.add_argument("--config", help="Path to presence_sync.yaml")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    result: dict[str, Any]
    try:
        app_id, tenant_id, app_secret = config.require_credentials()
        grant = acquire_token(
            app_id,
            tenant_id,
            app_secret,
            token_url=config.graph.token_url,
            scope=config.graph.scope,
            timeout=config.graph.timeout_seconds,
        )
        result = {
            "success": True,
            "message": "Token acquired",
            "expires_at": grant.expires_at.isoformat(),
        }
    except (ConfigError, AuthError) as e:
        result = {"success": False, "error": str(e)}

    if result.get("success"):
        print(f"OK {result.get('message', 'Success')}")
    else:
        print(f"ERROR {result.get('error')}")
        sys.exit(1)

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
