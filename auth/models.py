"""
auth/models.py -- Domain types for authentication and authorization.

Pattern: Data class (pure data container, zero logic). Stores and the access
policy do the work.

Layer rule: no imports from api/, web/, or blog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AccessLevel(str, Enum):
    """Request-scoped access level decided once per request by the access policy."""

    ANONYMOUS = "anonymous"
    EDITOR = "editor"

    @property
    def is_editor(self) -> bool:
        return self is AccessLevel.EDITOR


@dataclass
class AuthorizedEditor:
    """An allow-list record: the provider subject id of someone who may edit.

    Provisioned out-of-band (main.py grant). The serving path only reads these.
    """

    subject_id: str  # provider's stable user ID ("sub")
    note: str | None = None  # free text for the admin, e.g. the person's name
    created_at: str | None = None
