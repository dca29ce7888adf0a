"""
auth/store.py -- SQLAlchemy Core persistence layer for the editor allow-list.

Pattern: Repository + Data Mapper (same as blog/store.py).
AuthorizationStore is the repository; _row_to_editor is the mapper.

The serving path only ever calls is_authorized(). grant(), revoke() and
list_editors() are administrative and run from the main.py CLI.

Integrity: subject_id is indexed but deliberately not UNIQUE. Records may be
inserted by hand or by other tooling, so is_authorized() counts matches and
treats anything other than exactly one as "not authorized", logging a
duplicate as a data-integrity fault.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, web/, or blog/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Table, Text, func, select

from auth.models import AuthorizedEditor
from core.database import Database, metadata

logger = logging.getLogger("blogengine.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_authorization = Table(
    "authorization",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("subject_id", String(255), nullable=False, index=True),
    Column("note", Text),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthorizationStore:
    """Repository for AuthorizedEditor records.

    Usage:
        store = AuthorizationStore(db)
        store.grant("110248495921238986420", note="Nabil")
        store.is_authorized("110248495921238986420")   # True
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def is_authorized(self, subject_id: str) -> bool:
        """Return True only if exactly one allow-list record matches subject_id."""
        if not subject_id:
            return False
        with self._db.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(_authorization).where(_authorization.c.subject_id == subject_id)
            ).scalar()
        if count and count > 1:
            logger.error("Authorization data fault: %d records share one subject id", count)
            return False
        return count == 1

    def grant(self, subject_id: str, note: str | None = None) -> bool:
        """Add subject_id to the allow-list. Returns False if any record for it already exists."""
        with self._db.connect() as conn:
            existing = conn.execute(
                select(func.count()).select_from(_authorization).where(_authorization.c.subject_id == subject_id)
            ).scalar()
            if existing:
                return False
            conn.execute(_authorization.insert().values(subject_id=subject_id, note=note, created_at=_now_iso()))
            conn.commit()
        logger.info("Granted editor access")
        return True

    def revoke(self, subject_id: str) -> bool:
        """Remove every record for subject_id. Returns True if anything was removed.

        Takes effect on the next request: sessions are re-checked against this
        table on every request, so no session reissue is needed.
        """
        with self._db.connect() as conn:
            result = conn.execute(_authorization.delete().where(_authorization.c.subject_id == subject_id))
            conn.commit()
        if result.rowcount:
            logger.info("Revoked editor access (%d record(s))", result.rowcount)
        return result.rowcount > 0

    def list_editors(self) -> list[AuthorizedEditor]:
        """Return all allow-list records ordered by subject id."""
        with self._db.connect() as conn:
            rows = conn.execute(_authorization.select().order_by(_authorization.c.subject_id)).fetchall()
        return [_row_to_editor(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_editor(row) -> AuthorizedEditor:
    return AuthorizedEditor(
        subject_id=row.subject_id,
        note=row.note,
        created_at=row.created_at,
    )
