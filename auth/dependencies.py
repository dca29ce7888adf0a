"""
auth/dependencies.py -- Access policy and FastAPI Depends() helpers.

authorize() is the single place that decides whether a request is an editor:
  Editor    iff the session credential yields a subject id AND the
            authorization store confirms that subject is on the allow-list.
  Anonymous otherwise.

The allow-list is consulted on every request, so revoking an editor takes
effect immediately without reissuing or invalidating their session token.

resolve_access_level() runs authorize() as an HTTP middleware step before any
route handler and stores the result on request.state. Handlers never parse
cookies themselves; they declare one of:

  get_access_level() -- soft: returns AccessLevel, never raises.
  require_editor()   -- hard: raises AuthorizationError (-> 401) for anyone
                        who is not an editor.

Layer rule: no imports from web/ or blog/. This module may import from
fastapi/starlette because it is part of the dependency injection system.
"""

from __future__ import annotations

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection

from auth.models import AccessLevel
from auth.store import AuthorizationStore
from auth.tokens import extract_subject
from core.errors import AuthorizationError


def authorize(request: HTTPConnection, auth_store: AuthorizationStore) -> tuple[AccessLevel, str | None]:
    """Decide the access level for request. Returns (level, subject_id).

    subject_id is the extracted session subject even when the level is
    Anonymous (valid session, not on the allow-list); it is None when there
    is no valid session at all.
    """
    subject_id = extract_subject(request)
    if subject_id is None:
        return AccessLevel.ANONYMOUS, None
    if auth_store.is_authorized(subject_id):
        return AccessLevel.EDITOR, subject_id
    return AccessLevel.ANONYMOUS, subject_id


async def resolve_access_level(request: Request, call_next):
    """HTTP middleware: attach access_level and subject_id to request.state.

    The store lookup is synchronous SQLAlchemy, so it runs in the threadpool
    to keep the event loop free.
    """
    auth_store: AuthorizationStore | None = getattr(request.app.state, "auth_store", None)
    if auth_store is None:
        level, subject_id = AccessLevel.ANONYMOUS, None
    else:
        level, subject_id = await run_in_threadpool(authorize, request, auth_store)
    request.state.access_level = level
    request.state.subject_id = subject_id
    return await call_next(request)


def get_access_level(request: Request) -> AccessLevel:
    """Return the access level resolved by the middleware (Anonymous if unset).

    Use as a FastAPI dependency:
        @router.get("/entries")
        def route(level: AccessLevel = Depends(get_access_level)): ...
    """
    return getattr(request.state, "access_level", AccessLevel.ANONYMOUS)


def require_editor(request: Request) -> AccessLevel:
    """Require an editor session. Raises AuthorizationError (HTTP 401) otherwise.

    Use as a FastAPI dependency on every mutation route:
        @router.post("/entries")
        def route(_: AccessLevel = Depends(require_editor)): ...
    """
    level = get_access_level(request)
    if not level.is_editor:
        raise AuthorizationError()
    return level
