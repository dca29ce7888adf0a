"""
blog/models.py -- Domain dataclasses for blog entries.

BlogEntry is a plain data container. The store assigns id and persists it;
validate_entry() holds the field rules because they belong to the entity,
not to any particular storage backend.

Separation of concerns: these dataclasses are the blog's domain truth; the
Pydantic models in api/models.py are only the HTTP contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.errors import ValidationError

DEFAULT_LAST_EDIT_DATE = "Today"

# Minimum lengths per text field, checked before any write.
_MIN_LENGTHS: dict[str, int] = {
    "title": 2,
    "content": 10,
    "author": 1,
}


class EntryStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"


@dataclass
class BlogEntry:
    """A single blog post.

    id is "" until the store inserts the record. Callers pass an entry with
    an empty id to create() and an entry with an existing id to update().

    status defaults to Draft so a freshly written entry is never public by
    accident; publishing is always an explicit edit.
    """

    title: str
    content: str
    author: str
    id: str = ""
    last_edit_date: str = DEFAULT_LAST_EDIT_DATE
    status: EntryStatus = EntryStatus.DRAFT

    @property
    def is_published(self) -> bool:
        return self.status is EntryStatus.PUBLISHED


def validate_entry(entry: BlogEntry) -> None:
    """Raise ValidationError for the first field that breaks an entity rule."""
    for field_name, minimum in _MIN_LENGTHS.items():
        value = getattr(entry, field_name)
        if not isinstance(value, str) or len(value) < minimum:
            raise ValidationError(
                field_name,
                f"{field_name} must be at least {minimum} characters long.",
            )
    if not isinstance(entry.status, EntryStatus):
        raise ValidationError("status", "status must be Draft or Published.")
