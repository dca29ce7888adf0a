"""
blog/store.py -- SQLAlchemy Core persistence layer for blog entries.

Pattern: Repository + Data Mapper (same shape as auth/store.py).
BlogStore is the repository; _row_to_entry is the mapper. Route handlers never
touch SQL directly.

Visibility: list_visible() and get_visible() take an is_editor flag decided by
the access policy (auth/dependencies.py). The store trusts that flag and does
not look at sessions itself -- the policy decision lives in one place.

Concurrency: every method borrows its own pooled connection. update() is a
single-row replace, so concurrent edits of the same entry resolve as
last-writer-wins; there are no multi-entry transactions.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = BlogStore(db)
    entry_id = store.create(BlogEntry(title="Hi there", content="0123456789", author="Ann"))
    entries = store.list_visible(is_editor=False)
    store.delete(entry_id)
"""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import Column, String, Table, Text

from blog.models import DEFAULT_LAST_EDIT_DATE, BlogEntry, EntryStatus, validate_entry
from core.database import Database, metadata
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("blogengine.blog.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_blogs = Table(
    "blogs",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("title", Text, nullable=False, index=True),
    Column("content", Text, nullable=False),
    Column("author", Text, nullable=False),
    Column("last_edit_date", String(64), nullable=False),
    Column("status", String(16), nullable=False, server_default=EntryStatus.DRAFT.value),
)


def _new_entry_id() -> str:
    # 12 random bytes, hex encoded: same width as a MongoDB ObjectId string.
    return secrets.token_hex(12)


def _entry_values(entry: BlogEntry) -> dict:
    return {
        "title": entry.title,
        "content": entry.content,
        "author": entry.author,
        "last_edit_date": entry.last_edit_date or DEFAULT_LAST_EDIT_DATE,
        "status": entry.status.value,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BlogStore:
    """Repository for BlogEntry records."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def list_visible(self, is_editor: bool) -> list[BlogEntry]:
        """Return a snapshot of entries the caller may see, ordered by title.

        Editors get every entry including drafts; everyone else only gets
        published ones. Ties on title are broken by id so the order is stable.
        """
        query = _blogs.select().order_by(_blogs.c.title, _blogs.c.id)
        if not is_editor:
            query = query.where(_blogs.c.status == EntryStatus.PUBLISHED.value)
        with self._db.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_entry(r) for r in rows]

    def get(self, entry_id: str) -> BlogEntry:
        """Look up an entry by id. Raises NotFoundError if it does not exist."""
        with self._db.connect() as conn:
            row = conn.execute(_blogs.select().where(_blogs.c.id == entry_id)).fetchone()
        if row is None:
            raise NotFoundError(entry_id)
        return _row_to_entry(row)

    def get_visible(self, entry_id: str, is_editor: bool) -> BlogEntry:
        """Like get(), but a draft looks absent to non-editors."""
        entry = self.get(entry_id)
        if not is_editor and not entry.is_published:
            raise NotFoundError(entry_id)
        return entry

    def create(self, entry: BlogEntry) -> str:
        """Validate and insert a new entry, returning its freshly assigned id.

        An entry that already carries an id is a caller error: updates go
        through update(), never through create().
        """
        if entry.id:
            raise ValidationError("id", "A new entry must not carry an id; use update() instead.")
        validate_entry(entry)
        entry_id = _new_entry_id()
        with self._db.connect() as conn:
            conn.execute(_blogs.insert().values(id=entry_id, **_entry_values(entry)))
            conn.commit()
        logger.info("Created entry %s (%s)", entry_id, entry.status.value)
        return entry_id

    def update(self, entry: BlogEntry) -> None:
        """Replace every field of an existing entry. Raises NotFoundError if absent."""
        if not entry.id:
            raise ValidationError("id", "An entry id is required for update.")
        validate_entry(entry)
        with self._db.connect() as conn:
            result = conn.execute(_blogs.update().where(_blogs.c.id == entry.id).values(**_entry_values(entry)))
            conn.commit()
        if result.rowcount == 0:
            raise NotFoundError(entry.id)
        logger.info("Updated entry %s (%s)", entry.id, entry.status.value)

    def delete(self, entry_id: str) -> None:
        """Permanently delete an entry.

        Deleting an id that does not exist raises NotFoundError every time, so
        a repeated delete is reported rather than silently accepted. Callers
        processing a batch may catch it and carry on.
        """
        with self._db.connect() as conn:
            result = conn.execute(_blogs.delete().where(_blogs.c.id == entry_id))
            conn.commit()
        if result.rowcount == 0:
            raise NotFoundError(entry_id)
        logger.info("Deleted entry %s", entry_id)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_entry(row) -> BlogEntry:
    return BlogEntry(
        id=row.id,
        title=row.title,
        content=row.content,
        author=row.author,
        last_edit_date=row.last_edit_date,
        status=EntryStatus(row.status),
    )

