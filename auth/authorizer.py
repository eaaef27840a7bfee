"""
auth/authorizer.py -- Role-based authorization decision.

A RoleAuthorizer is an explicit, immutable allowed-role set declared next to
the route that uses it:

    @router.delete("/users/{user_id}")
    def delete_user(requester: Principal = Depends(require_roles(SUPER_ADMIN_ONLY))): ...

It is a pure decision: no state beyond the set, no side effects. It must only
run once a principal has been authenticated. Missing or invalid tokens are a
401 raised before this code is reached; a valid principal whose role is not in
the set is a 403 raised here. The two are never conflated.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.errors import Forbidden
from auth.models import Role


class RoleAuthorizer:
    """Admit a role iff it is a member of the allowed set.

    Membership, not hierarchy: routes list every role they admit. ADMIN_ROLES
    spells out both admin tiers rather than relying on Role ordering.
    """

    __slots__ = ("allowed", "message")

    def __init__(self, allowed: Iterable[Role], message: str = "Insufficient privileges.") -> None:
        roles = frozenset(Role(r) for r in allowed)
        if not roles:
            raise ValueError("RoleAuthorizer needs at least one allowed role")
        self.allowed: frozenset[Role] = roles
        self.message = message

    def admits(self, role: Role) -> bool:
        try:
            return Role(role) in self.allowed
        except ValueError:
            return False

    def check(self, role: Role) -> None:
        """Raise Forbidden if role is not admitted."""
        if not self.admits(role):
            raise Forbidden(self.message)

    def __repr__(self) -> str:
        names = ", ".join(sorted(r.value for r in self.allowed))
        return f"RoleAuthorizer({names})"


ANY_ROLE = RoleAuthorizer(Role)
ADMIN_ROLES = RoleAuthorizer({Role.ADMIN, Role.SUPER_ADMIN}, "Admin privileges required.")
SUPER_ADMIN_ONLY = RoleAuthorizer({Role.SUPER_ADMIN}, "Super admin privileges required.")
