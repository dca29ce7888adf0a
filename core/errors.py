"""
core/errors.py -- Exception taxonomy shared by every BlogEngine layer.

Each error carries a stable machine-readable code and the HTTP status the API
layer maps it to. api/main.py owns the translation into the ErrorResponse
envelope; stores and auth helpers only raise.

  ValidationError        422  user-correctable, names the offending field
  NotFoundError          404  unknown entry id
  AuthorizationError     401  no editor session where one is required
  IdentityProviderError  502  token exchange / user-info failure (login flow
                              turns this into a redirect, never a response body)
  StoreError             500  connectivity or integrity fault in the data store

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, or blog/.
"""

from __future__ import annotations


class BlogEngineError(Exception):
    code = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(BlogEngineError):
    """An entity field failed a structural rule. field names the offender."""

    code = "validation_error"
    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class NotFoundError(BlogEngineError):
    code = "not_found"
    status_code = 404

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id!r} not found.")


class AuthorizationError(BlogEngineError):
    code = "unauthorized"
    status_code = 401

    def __init__(self, message: str = "Editor authentication required.") -> None:
        super().__init__(message)


class IdentityProviderError(BlogEngineError):
    """The identity provider could not resolve a subject identifier.

    The message is for server logs only. Login routes redirect to the failure
    page and never show it to the browser.
    """

    code = "identity_provider_error"
    status_code = 502


class StoreError(BlogEngineError):
    code = "internal_error"
    status_code = 500
