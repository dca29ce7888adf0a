"""
API request and response models for BlogEngine REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in blog/models.py, which
own the internal domain representation. Route handlers map between the two.

Field-length rules (title >= 2, content >= 10, author non-empty) are NOT repeated
here. They belong to the entity and are enforced by blog.models.validate_entry,
whose ValidationError names the offending field.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from blog.models import DEFAULT_LAST_EDIT_DATE, BlogEntry, EntryStatus

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class EntryWrite(BaseModel):
    """Request body for POST /api/v1/entries and PUT /api/v1/entries/{id}.

    id is accepted so that a create carrying an id can be rejected explicitly
    as a caller error instead of being silently dropped.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = ""
    title: str
    content: str
    author: str
    last_edit_date: str = DEFAULT_LAST_EDIT_DATE
    status: EntryStatus = EntryStatus.DRAFT

    def to_entry(self, entry_id: Optional[str] = None) -> BlogEntry:
        return BlogEntry(
            id=self.id if entry_id is None else entry_id,
            title=self.title,
            content=self.content,
            author=self.author,
            last_edit_date=self.last_edit_date or DEFAULT_LAST_EDIT_DATE,
            status=self.status,
        )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class EntryResponse(BaseModel):
    """One blog entry as returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str
    author: str
    last_edit_date: str
    status: EntryStatus

    @classmethod
    def from_entry(cls, entry: BlogEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            title=entry.title,
            content=entry.content,
            author=entry.author,
            last_edit_date=entry.last_edit_date,
            status=entry.status,
        )


class EntryListResponse(BaseModel):
    """Response body for GET /api/v1/entries.

    editable tells the client whether the caller may modify entries -- the
    same flag the web index uses to switch between read-only and edit views.
    """

    model_config = ConfigDict(frozen=True)

    editable: bool
    entries: list[EntryResponse]


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope: {"error": {"code", "message", "detail", "field"}}."""

    error: ErrorDetail
