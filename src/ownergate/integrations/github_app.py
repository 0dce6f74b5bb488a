"""GitHub API access: configuration, JWT auth, installation tokens, paging.

Env vars: OWNERGATE_GITHUB_TOKEN (or GITHUB_TOKEN), OWNERGATE_GITHUB_APP_ID,
OWNERGATE_GITHUB_APP_PRIVATE_KEY_PATH, OWNERGATE_GITHUB_APP_PRIVATE_KEY,
OWNERGATE_GITHUB_INSTALLATION_ID, OWNERGATE_GITHUB_API_URL,
OWNERGATE_GITHUB_TIMEOUT.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
import jwt  # PyJWT

from ownergate.defaults import DEFAULT_HTTP_TIMEOUT_SECONDS, GITHUB_PAGE_SIZE, LIST_MAX_PAGES

log = logging.getLogger("ownergate.github")

# --- Configuration ---

_DEFAULT_API_URL = "https://api.github.com"
_JWT_ALGORITHM = "RS256"
_JWT_EXPIRY_SECONDS = 600  # 10 min (GitHub max)
_TOKEN_REFRESH_MARGIN = 60  # refresh 60s before expiry
_TOKEN_LIFETIME = 3500      # installation tokens live 1h

GITHUB_ACCEPT = "application/vnd.github+json"


def _get_private_key() -> str:
    """Load the GitHub App private key from file or env var."""
    path = os.environ.get("OWNERGATE_GITHUB_APP_PRIVATE_KEY_PATH", "")
    if path and os.path.isfile(path):
        with open(path) as f:
            return f.read()
    raw = os.environ.get("OWNERGATE_GITHUB_APP_PRIVATE_KEY", "")
    if raw:
        return raw
    raise RuntimeError(
        "GitHub App private key not configured. "
        "Set OWNERGATE_GITHUB_APP_PRIVATE_KEY_PATH or OWNERGATE_GITHUB_APP_PRIVATE_KEY."
    )


def _get_app_id() -> str:
    app_id = os.environ.get("OWNERGATE_GITHUB_APP_ID", "")
    if not app_id:
        raise RuntimeError("OWNERGATE_GITHUB_APP_ID not set.")
    return app_id


def api_url() -> str:
    return os.environ.get("OWNERGATE_GITHUB_API_URL", _DEFAULT_API_URL).rstrip("/")


def http_timeout() -> float:
    raw = os.environ.get("OWNERGATE_GITHUB_TIMEOUT", "")
    try:
        value = float(raw)
        return value if value > 0 else DEFAULT_HTTP_TIMEOUT_SECONDS
    except (TypeError, ValueError):
        return DEFAULT_HTTP_TIMEOUT_SECONDS


def static_token() -> str:
    """Personal/Actions token, if one is configured."""
    return os.environ.get("OWNERGATE_GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN", "")


def is_app_configured() -> bool:
    """True when GitHub App integration is configured (APP_ID env var set)."""
    return bool(os.environ.get("OWNERGATE_GITHUB_APP_ID"))


def _safe_int(value: Any) -> int:
    """Convert *value* to a positive int, returning 0 on failure or non-positive."""
    try:
        n = int(value)
        return n if n > 0 else 0
    except (TypeError, ValueError):
        return 0


def resolve_installation_id(event_value: Any = None) -> int:
    """Installation ID from the webhook event, else the env var; 0 if none."""
    if event_value not in (None, ""):
        n = _safe_int(event_value)
        if n > 0:
            return n
    return _safe_int(os.environ.get("OWNERGATE_GITHUB_INSTALLATION_ID", ""))


@asynccontextmanager
async def ensure_client(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *client* as-is, or create a temporary ``AsyncClient``."""
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(timeout=http_timeout()) as c:
            yield c


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"token {token}", "Accept": GITHUB_ACCEPT}


# --- JWT ---

def generate_jwt(app_id: str | None = None, private_key: str | None = None) -> str:
    """Create a short-lived JWT for authenticating as the GitHub App."""
    aid = app_id or _get_app_id()
    key = private_key or _get_private_key()
    now = int(time.time())
    payload = {
        "iat": now - 60,  # issued-at (60s clock skew allowance)
        "exp": now + _JWT_EXPIRY_SECONDS,
        "iss": aid,
    }
    return jwt.encode(payload, key, algorithm=_JWT_ALGORITHM)


# --- Token cache ---

_token_cache: dict[int, tuple[str, float]] = {}  # installation_id -> (token, expires_at)


async def get_installation_token(
    installation_id: int,
    client: httpx.AsyncClient,
    *,
    app_id: str | None = None,
    private_key: str | None = None,
) -> str:
    """Get (or refresh) an installation access token."""
    cached = _token_cache.get(installation_id)
    if cached and cached[1] > time.time() + _TOKEN_REFRESH_MARGIN:
        return cached[0]

    token_jwt = generate_jwt(app_id=app_id, private_key=private_key)
    url = f"{api_url()}/app/installations/{installation_id}/access_tokens"
    resp = await client.post(
        url,
        headers={
            "Authorization": f"Bearer {token_jwt}",
            "Accept": GITHUB_ACCEPT,
        },
    )
    resp.raise_for_status()
    token = resp.json()["token"]
    _token_cache[installation_id] = (token, time.time() + _TOKEN_LIFETIME)
    return token


def reset_token_cache() -> None:
    """Clear token cache (for tests)."""
    _token_cache.clear()


async def resolve_token(
    client: httpx.AsyncClient,
    installation_id: Any = None,
) -> str:
    """Pick credentials: an explicit token wins, then a GitHub App
    installation token.  Raises ``RuntimeError`` when neither is available."""
    token = static_token()
    if token:
        return token
    if is_app_configured():
        resolved = resolve_installation_id(installation_id)
        if resolved:
            return await get_installation_token(resolved, client)
        raise RuntimeError("GitHub App configured but no installation id available.")
    raise RuntimeError(
        "GitHub credentials not configured. "
        "Set OWNERGATE_GITHUB_TOKEN / GITHUB_TOKEN or the GitHub App variables."
    )


# --- Paging ---

async def paginate(
    client: httpx.AsyncClient,
    url: str,
    token: str,
    *,
    params: dict[str, Any] | None = None,
    per_page: int = GITHUB_PAGE_SIZE,
    max_pages: int = LIST_MAX_PAGES,
) -> list[dict[str, Any]]:
    """GET every page of a GitHub list endpoint.

    Stops on an empty or short page.  Hitting *max_pages* logs a warning and
    returns what was collected.
    """
    items: list[dict[str, Any]] = []
    page = 1
    while True:
        query = dict(params or {})
        query.update({"per_page": per_page, "page": page})
        resp = await client.get(url, params=query, headers=auth_headers(token))
        resp.raise_for_status()
        batch = resp.json()
        if not batch:
            break
        items.extend(batch)
        if len(batch) < per_page:
            break
        if page >= max_pages:
            log.warning(
                "Reached maximum pagination limit (%d items) for %s. Some items may not be included.",
                per_page * max_pages, url,
            )
            break
        page += 1
    return items
