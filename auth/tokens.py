"""
auth/tokens.py -- Session credential issue, verification, and cookie helpers.

Security design decisions:
  Session credential: python-jose JWT with HS256. The token carries only the
       provider subject id ("sub") plus iat/exp. Signing with SECRET_KEY makes
       it tamper-evident: any changed byte fails verification. There is no
       server-side session table -- validity is a function of the signature
       and the exp claim alone.

  Expiry: every token carries exp (Settings.session_expire_seconds, default
       8 hours). Logout only deletes the cookie, so exp is what bounds the
       usefulness of a stolen credential.

  Verification never raises. extract_subject() returns None on any failure
       and the request is simply treated as anonymous.

  SECRET_KEY: sourced from core.config.get_settings(). Dev mode auto-generates
       one; production mode refuses to start without one [M6][M7].

Layer rule: no imports from api/, web/, or blog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode
from starlette.requests import HTTPConnection

from core.config import get_settings

logger = logging.getLogger("blogengine.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton [M6]
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"
_SECRET_KEY = _settings.secret_key

# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_session_token(subject_id: str, expire_seconds: int = 0) -> str:
    """Encode a signed session token bound to subject_id.

    Args:
        subject_id:     The identity provider's stable subject identifier.
        expire_seconds: Token lifetime. If 0 (default), uses
                        Settings.session_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _SECRET_KEY, algorithm=_ALGORITHM)


def decode_session_token(token: str) -> str | None:
    """Verify a session token and return its subject id, or None on any failure.

    Covers bad signatures, truncated or garbled input, expired tokens, and
    payloads without a usable "sub" claim. A signature segment that is not in
    canonical base64url form is rejected too, so every character of an issued
    token is significant.
    """
    try:
        payload = jwt.decode(token, _SECRET_KEY, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not _has_canonical_signature(token):
        logger.debug("Rejecting session token with a non-canonical signature encoding")
        return None
    subject_id = payload.get("sub")
    if not isinstance(subject_id, str) or not subject_id:
        return None
    return subject_id


def _has_canonical_signature(token: str) -> bool:
    """Return True if re-encoding the decoded signature reproduces it exactly.

    The last base64url character of an HS256 signature carries unused low
    bits, so several spellings decode to the same bytes. Only the spelling
    jose itself emits is accepted.
    """
    signature = token.rsplit(".", 1)[-1].encode("ascii")
    return base64url_encode(base64url_decode(signature)) == signature


def extract_subject(request: HTTPConnection) -> str | None:
    """Read the session credential from the request and return the bound subject.

    Credential sources, in priority order:
      1. Session cookie -- set by the browser login flow (httpOnly).
      2. Authorization: Bearer header -- scripts holding a copied token.

    Never raises. Absent or invalid credentials mean anonymous.
    """
    token: str | None = request.cookies.get(_settings.session_cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None
    subject_id = decode_session_token(token)
    if subject_id is None:
        logger.debug("Ignoring invalid session credential on %s", request.url.path)
    return subject_id


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for the
        admin form routes.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the token expiry so both expire together.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    response.set_cookie(
        _settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_session_cookie(response) -> None:
    """Instruct the browser to discard the session credential (logout)."""
    response.delete_cookie(
        _settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
    )
