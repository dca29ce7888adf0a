"""Unit tests for auth/oauth.py -- resolving a provider callback to a subject id.

The authlib client is replaced by AsyncMocks; no network traffic.

Covers:
- Happy path returns "sub" and ignores other profile fields
- The access token is passed to the user-info call
- OAuthError / transport errors on either call -> IdentityProviderError
- Non-2xx, non-JSON, missing or blank "sub" -> IdentityProviderError
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from authlib.integrations.starlette_client import OAuthError

from auth.oauth import begin_login, complete_login
from core.config import get_settings
from core.errors import IdentityProviderError


def _run(coro):
    return asyncio.run(coro)


def _userinfo(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, **kwargs)


class TestCompleteLogin:
    def test_returns_subject(self, oauth_client: MagicMock) -> None:
        oauth_client.get.return_value = _userinfo(
            json={"sub": "110248495921238986420", "name": "Nabil", "picture": "https://example/p.png"}
        )
        assert _run(complete_login(oauth_client, MagicMock())) == "110248495921238986420"

    def test_userinfo_called_with_access_token(self, oauth_client: MagicMock) -> None:
        oauth_client.get.return_value = _userinfo(json={"sub": "abc"})
        _run(complete_login(oauth_client, MagicMock()))

        args, kwargs = oauth_client.get.call_args
        assert args[0] == get_settings().oauth_userinfo_url
        assert kwargs["token"] == {"access_token": "provider-token"}

    def test_token_exchange_rejected(self, oauth_client: MagicMock) -> None:
        oauth_client.authorize_access_token = AsyncMock(side_effect=OAuthError(error="invalid_grant"))
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))
        oauth_client.get.assert_not_called()

    def test_token_endpoint_unreachable(self, oauth_client: MagicMock) -> None:
        oauth_client.authorize_access_token = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))

    def test_userinfo_unreachable(self, oauth_client: MagicMock) -> None:
        oauth_client.get.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))

    @pytest.mark.parametrize("status_code", [400, 401, 403, 500, 503])
    def test_non_2xx_userinfo(self, oauth_client: MagicMock, status_code: int) -> None:
        oauth_client.get.return_value = _userinfo(status_code, json={"sub": "abc"})
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))

    def test_non_json_userinfo(self, oauth_client: MagicMock) -> None:
        oauth_client.get.return_value = _userinfo(content=b"<html>oops</html>")
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))

    @pytest.mark.parametrize(
        "payload",
        [{}, {"sub": ""}, {"sub": None}, {"sub": 12345}, {"name": "No Subject"}, ["sub"]],
    )
    def test_missing_or_malformed_subject(self, oauth_client: MagicMock, payload) -> None:
        oauth_client.get.return_value = _userinfo(json=payload)
        with pytest.raises(IdentityProviderError):
            _run(complete_login(oauth_client, MagicMock()))


def test_begin_login_delegates_to_authlib(oauth_client: MagicMock) -> None:
    request = MagicMock()
    response = _run(begin_login(oauth_client, request, "http://testserver/oauth/callback"))
    oauth_client.authorize_redirect.assert_awaited_once_with(request, "http://testserver/oauth/callback")
    assert response.status_code == 302
