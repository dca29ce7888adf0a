"""
web/routes.py -- Browser-facing routes: the OAuth login flow, the public index,
and the editor admin forms.

These routes share app.state with the API routes (same stores, same OAuth
registry) but return HTML or redirects instead of JSON. Templates are kept
deliberately plain; one index template serves both readers and editors and
switches on the `editable` flag.

Route registration order matters: GET /login/success and GET /login/failure are
registered before GET /login so the literal paths are matched first.

Routes:
  GET  /                               -- published entries (all entries for editors)
  GET  /admin                          -- editor index (redirects to /login otherwise)
  GET  /admin/new                      -- blank entry form
  GET  /admin/edit/{entry_id}          -- entry form pre-filled for editing
  POST /admin/entries                  -- create (blank id) or update (id present)
  POST /admin/entries/{entry_id}/delete -- delete, redirect /admin
  GET  /login/success                  -- login succeeded page
  GET  /login/failure                  -- login failed page
  GET  /login                          -- redirect to the provider consent screen
  GET  /oauth/callback                 -- provider callback, issues the session cookie
  GET  /logout                         -- clear session cookie, redirect /

Login state machine:
  Anonymous --GET /login--> PendingGrant --callback--> Verifying
  Verifying --subject resolved and on allow-list--> Editor (cookie issued)
  Verifying --any failure--> Anonymous (redirect /login/failure)
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from auth.dependencies import get_access_level
from auth.models import AccessLevel
from auth.oauth import begin_login, complete_login, get_client
from auth.store import AuthorizationStore
from auth.tokens import clear_session_cookie, issue_session_token, set_session_cookie
from blog.models import DEFAULT_LAST_EDIT_DATE, BlogEntry, EntryStatus
from blog.store import BlogStore
from core.config import get_settings
from core.errors import IdentityProviderError, NotFoundError, ValidationError

logger = logging.getLogger("blogengine.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

_SUCCESS_URL = "/login/success"
_FAILURE_URL = "/login/failure"


def _require_editor(level: AccessLevel) -> Optional[RedirectResponse]:
    """Return a redirect to /login for non-editors, None if the caller may edit.

    Call at the top of admin route handlers:
        if redirect := _require_editor(level):
            return redirect
    """
    if not level.is_editor:
        return RedirectResponse("/login", status_code=302)
    return None


# ---------------------------------------------------------------------------
# Index pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request, level: AccessLevel = Depends(get_access_level)) -> HTMLResponse:
    store: BlogStore = request.app.state.blog_store
    entries = store.list_visible(is_editor=level.is_editor)
    return templates.TemplateResponse(request, "index.html", {"entries": entries, "editable": level.is_editor})


@router.get("/admin", response_class=HTMLResponse)
def admin_index(request: Request, level: AccessLevel = Depends(get_access_level)) -> HTMLResponse:
    if redirect := _require_editor(level):
        return redirect
    store: BlogStore = request.app.state.blog_store
    entries = store.list_visible(is_editor=True)
    return templates.TemplateResponse(request, "index.html", {"entries": entries, "editable": True})


# ---------------------------------------------------------------------------
# Admin forms
# ---------------------------------------------------------------------------


@router.get("/admin/new", response_class=HTMLResponse)
def new_entry_form(request: Request, level: AccessLevel = Depends(get_access_level)) -> HTMLResponse:
    if redirect := _require_editor(level):
        return redirect
    blank = BlogEntry(title="", content="", author="")
    return templates.TemplateResponse(request, "entry_form.html", {"entry": blank, "error_msg": None})


@router.get("/admin/edit/{entry_id}", response_class=HTMLResponse)
def edit_entry_form(request: Request, entry_id: str, level: AccessLevel = Depends(get_access_level)) -> HTMLResponse:
    if redirect := _require_editor(level):
        return redirect
    store: BlogStore = request.app.state.blog_store
    try:
        entry = store.get(entry_id)
    except NotFoundError:
        # Stale edit link (entry deleted meanwhile); fall back to the admin index.
        logger.info("Edit of absent entry %s redirected", entry_id)
        return RedirectResponse("/admin", status_code=302)
    return templates.TemplateResponse(request, "entry_form.html", {"entry": entry, "error_msg": None})


@router.post("/admin/entries", response_class=HTMLResponse)
def save_entry(
    request: Request,
    title: str = Form(""),
    content: str = Form(""),
    author: str = Form(""),
    entry_id: str = Form("", alias="id"),
    last_edit_date: str = Form(DEFAULT_LAST_EDIT_DATE),
    status: EntryStatus = Form(EntryStatus.DRAFT),
    level: AccessLevel = Depends(get_access_level),
) -> HTMLResponse:
    """Create the entry when the form's id is blank, otherwise replace it."""
    if redirect := _require_editor(level):
        return redirect
    store: BlogStore = request.app.state.blog_store
    entry = BlogEntry(
        id=entry_id.strip(),
        title=title.strip(),
        content=content.strip(),
        author=author.strip(),
        last_edit_date=last_edit_date.strip() or DEFAULT_LAST_EDIT_DATE,
        status=status,
    )
    try:
        if entry.id:
            store.update(entry)
        else:
            store.create(entry)
    except ValidationError as exc:
        return templates.TemplateResponse(
            request,
            "entry_form.html",
            {"entry": entry, "error_msg": exc.message, "error_field": exc.field},
            status_code=422,
        )
    return RedirectResponse("/admin", status_code=303)


@router.post("/admin/entries/{entry_id}/delete")
def delete_entry(request: Request, entry_id: str, level: AccessLevel = Depends(get_access_level)) -> RedirectResponse:
    if redirect := _require_editor(level):
        return redirect
    store: BlogStore = request.app.state.blog_store
    try:
        store.delete(entry_id)
    except NotFoundError:
        # Already gone (double submit); the admin index shows the real state.
        logger.info("Delete of absent entry %s ignored", entry_id)
    return RedirectResponse("/admin", status_code=303)


# ---------------------------------------------------------------------------
# Login flow
# ---------------------------------------------------------------------------


@router.get("/login/success", response_class=HTMLResponse)
def login_success(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "login_result.html", {"succeeded": True})


@router.get("/login/failure", response_class=HTMLResponse)
def login_failure(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "login_result.html", {"succeeded": False})


@limiter.limit(get_settings().login_rate_limit)
@router.get("/login")
async def login(request: Request) -> RedirectResponse:
    """Redirect the browser to the provider's consent screen."""
    client = get_client(request.app.state.oauth)
    if client is None:
        logger.warning("Login attempted but no OAuth provider is configured")
        return RedirectResponse(_FAILURE_URL, status_code=302)
    redirect_uri = str(request.url_for("oauth_callback"))
    return await begin_login(client, request, redirect_uri)


@router.get("/oauth/callback", name="oauth_callback")
async def oauth_callback(request: Request) -> RedirectResponse:
    """Handle the provider callback and issue the editor session cookie.

    Flow:
      1. Exchange the grant and resolve the subject id (IdentityProviderError
         on any provider problem).
      2. Check the subject against the allow-list.
      3. Issue the session token, set the cookie, redirect to /login/success.

    Every failure ends at /login/failure; provider details stay in the log.
    """
    client = get_client(request.app.state.oauth)
    if client is None:
        return RedirectResponse(_FAILURE_URL, status_code=302)

    try:
        subject_id = await complete_login(client, request)
    except IdentityProviderError as exc:
        logger.warning("OAuth login failed: %s", exc.message)
        return RedirectResponse(_FAILURE_URL, status_code=302)

    auth_store: AuthorizationStore = request.app.state.auth_store
    if not await run_in_threadpool(auth_store.is_authorized, subject_id):
        logger.warning("OAuth login rejected: subject is not an authorized editor")
        return RedirectResponse(_FAILURE_URL, status_code=302)

    resp = RedirectResponse(_SUCCESS_URL, status_code=302)
    set_session_cookie(resp, issue_session_token(subject_id))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the public index."""
    resp = RedirectResponse("/", status_code=302)
    clear_session_cookie(resp)
    return resp
