"""
auth/errors.py -- Error taxonomy for authentication and authorization.

Every failure the access-control core can report is one of four kinds. Each
carries the HTTP status and machine-readable code the API layer renders, so
api/main.py maps all of them with a single exception handler.

  Unauthorized (401) -- bad credentials, missing/invalid/expired token,
                        token-kind mismatch.
  Forbidden    (403) -- valid identity but insufficient role, or a refresh
                        token that does not match the stored hash.
  Conflict     (409) -- identity already registered, or a guarded
                        account-policy violation.
  NotFound     (404) -- operating on a nonexistent account.

All of them are terminal for the request. Nothing in auth/ retries.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. Subclasses fix status_code and code."""

    status_code: int = 400
    code: str = "auth_error"
    default_message: str = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AuthError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied."


class Conflict(AuthError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class NotFound(AuthError):
    status_code = 404
    code = "not_found"
    default_message = "User not found."
