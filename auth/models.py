"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store, services, and routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Role(str, Enum):
    """Privilege tier of a principal. Totally ordered: user < admin < super_admin.

    Subclasses str so values compare equal to their raw strings and serialize
    straight into JWT claims and JSON responses.
    """

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, other: Role) -> bool:
        """Return True if this role carries every privilege of `other`."""
        return self.rank >= other.rank


_ROLE_RANK = {Role.USER: 0, Role.ADMIN: 1, Role.SUPER_ADMIN: 2}


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class Principal:
    """An account known to the credential store.

    password_hash and refresh_token_hash are secrets. They exist on this
    object only between the store and the authenticator / session manager.
    Everything handed further out goes through public(), which blanks both.

    refresh_token_hash holds at most one hash: one active session per account.
    """

    username: str
    email: str
    role: Role = Role.USER
    id: int | None = None
    password_hash: str | None = None
    refresh_token_hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def public(self) -> Principal:
        """Return a copy with both secret fields stripped."""
        return replace(self, password_hash=None, refresh_token_hash=None)

    @property
    def subject(self) -> str:
        """The JWT `sub` claim for this principal."""
        return str(self.id)


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of an access or refresh token.

    `admin` mirrors the advisory `type: "admin"` marker. It is never used
    on its own to authorize anything.
    """

    subject: str
    email: str
    role: Role
    kind: TokenKind
    expires_at: int
    admin: bool = False

    @property
    def user_id(self) -> int:
        return int(self.subject)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Session:
    """Result of a successful login: the sanitized principal plus both tokens."""

    principal: Principal
    access_token: str
    refresh_token: str
