"""
api/routes/v1/entries.py -- Blog entry REST endpoints.

Routes:
  GET    /api/v1/entries          -- list visible entries (scope by access level)
  GET    /api/v1/entries/{id}     -- one entry; drafts are 404 for non-editors
  POST   /api/v1/entries          -- create (editor only), 201
  PUT    /api/v1/entries/{id}     -- full replace (editor only)
  DELETE /api/v1/entries/{id}     -- permanent delete (editor only), 204

Errors raised by the store (ValidationError, NotFoundError, StoreError) are not
caught here; api/main.py maps them to the ErrorResponse envelope.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import EntryListResponse, EntryResponse, EntryWrite
from auth.dependencies import get_access_level, require_editor
from auth.models import AccessLevel
from blog.store import BlogStore

# Auth policy:
# - GET    /api/v1/entries:        public -- drafts included only for editors
# - GET    /api/v1/entries/{id}:   public -- drafts visible only to editors
# - POST   /api/v1/entries:        requires editor (require_editor)
# - PUT    /api/v1/entries/{id}:   requires editor (require_editor)
# - DELETE /api/v1/entries/{id}:   requires editor (require_editor)
router = APIRouter()


def _store(request: Request) -> BlogStore:
    return request.app.state.blog_store


@router.get("/entries", response_model=EntryListResponse)
def list_entries(request: Request, level: AccessLevel = Depends(get_access_level)) -> EntryListResponse:
    """Return entries ordered by title. Anonymous callers only see published ones."""
    entries = _store(request).list_visible(is_editor=level.is_editor)
    return EntryListResponse(
        editable=level.is_editor,
        entries=[EntryResponse.from_entry(e) for e in entries],
    )


@router.get("/entries/{entry_id}", response_model=EntryResponse)
def get_entry(request: Request, entry_id: str, level: AccessLevel = Depends(get_access_level)) -> EntryResponse:
    return EntryResponse.from_entry(_store(request).get_visible(entry_id, is_editor=level.is_editor))


@router.post("/entries", response_model=EntryResponse, status_code=201)
def create_entry(
    request: Request,
    body: EntryWrite,
    _level: AccessLevel = Depends(require_editor),
) -> EntryResponse:
    """Create an entry. A body that already carries an id is rejected with 422."""
    store = _store(request)
    entry_id = store.create(body.to_entry())
    return EntryResponse.from_entry(store.get(entry_id))


@router.put("/entries/{entry_id}", response_model=EntryResponse)
def update_entry(
    request: Request,
    entry_id: str,
    body: EntryWrite,
    _level: AccessLevel = Depends(require_editor),
) -> EntryResponse:
    """Replace an entry. The path id wins over any id in the body."""
    store = _store(request)
    store.update(body.to_entry(entry_id))
    return EntryResponse.from_entry(store.get(entry_id))


@router.delete("/entries/{entry_id}", status_code=204)
def delete_entry(
    request: Request,
    entry_id: str,
    _level: AccessLevel = Depends(require_editor),
) -> Response:
    _store(request).delete(entry_id)
    return Response(status_code=204)
