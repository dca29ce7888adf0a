"""
auth/oauth.py -- Authlib OAuth2 provider registration and identity verification.

BlogEngine trusts exactly one external OAuth2 provider (Google by default;
every endpoint is configurable). The provider is only used to learn a stable
subject identifier ("sub"); who may edit is decided by the allow-list in
auth/store.py, never by the provider.

Flow:
  begin_login()    -- redirect the browser to the consent screen with the
                      fixed scope (Settings.oauth_scope).
  complete_login() -- exchange the grant for an access token, call the
                      user-info endpoint with it as a bearer credential, and
                      return the "sub" field. Every other profile field is
                      ignored.

OAuth state parameter (CSRF protection) is handled by authlib automatically
via Starlette SessionMiddleware, which keeps the state between the redirect
and the callback.

Failure policy: any transport error, OAuthError, non-2xx response, or missing
subject raises IdentityProviderError. There are no retries -- the flow is
interactive and the user simply starts over from the failure page. The HTTP
timeout (Settings.http_timeout_seconds) is handed to the underlying httpx
client through client_kwargs so no provider call can block indefinitely.

Layer rule: no imports from api/, web/, or blog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

import httpx
from authlib.integrations.starlette_client import OAuth, OAuthError

from core.config import get_settings
from core.errors import IdentityProviderError

logger = logging.getLogger("blogengine.auth.oauth")

PROVIDER_NAME = "identity"

# ---------------------------------------------------------------------------
# Authlib OAuth registry
# ---------------------------------------------------------------------------

oauth = OAuth()

_cfg = get_settings()

if _cfg.oauth_enabled:
    oauth.register(
        name=PROVIDER_NAME,
        client_id=_cfg.oauth_client_id,
        client_secret=_cfg.oauth_client_secret,
        authorize_url=_cfg.oauth_authorize_url,
        access_token_url=_cfg.oauth_token_url,  # noqa: S106 -- URL, not a password
        userinfo_endpoint=_cfg.oauth_userinfo_url,
        client_kwargs={"scope": _cfg.oauth_scope, "timeout": _cfg.http_timeout_seconds},
    )
    logger.info("OAuth provider registered (scope: %s)", _cfg.oauth_scope)
else:
    logger.warning("OAuth client id/secret not configured -- editor login is disabled")


def get_client(registry):
    """Return the registered provider client, or None when login is disabled."""
    return registry.create_client(PROVIDER_NAME)


# ---------------------------------------------------------------------------
# Login flow
# ---------------------------------------------------------------------------


async def begin_login(client, request, redirect_uri: str):
    """Return the redirect response that sends the browser to the consent screen."""
    return await client.authorize_redirect(request, redirect_uri)


async def complete_login(client, request) -> str:
    """Resolve the provider callback on request to a stable subject identifier.

    Args:
        client:  The authlib OAuth client for the provider.
        request: The callback request carrying the authorization grant.

    Returns:
        The provider's "sub" value for the authenticated user.

    Raises:
        IdentityProviderError: token exchange or user-info lookup failed.
    """
    try:
        token = await client.authorize_access_token(request)
    except OAuthError as exc:
        raise IdentityProviderError(f"Token exchange rejected: {exc.error}") from exc
    except httpx.HTTPError as exc:
        raise IdentityProviderError("Token endpoint unreachable") from exc

    userinfo_url = _cfg.oauth_userinfo_url
    try:
        resp = await client.get(userinfo_url, token=token)
    except (OAuthError, httpx.HTTPError) as exc:
        raise IdentityProviderError("User-info endpoint unreachable") from exc

    if not resp.is_success:
        raise IdentityProviderError(f"User-info endpoint returned HTTP {resp.status_code}")

    try:
        profile = resp.json()
    except ValueError as exc:
        raise IdentityProviderError("User-info response is not JSON") from exc

    subject_id = profile.get("sub") if isinstance(profile, dict) else None
    if not isinstance(subject_id, str) or not subject_id:
        raise IdentityProviderError("User-info response has no subject identifier")
    return subject_id
