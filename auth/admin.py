"""
auth/admin.py -- Privileged account management.

Role hierarchy policy:
  - Only a super_admin may create admin accounts at all.
  - Creating a super_admin additionally requires a super_admin requester. Under
    the current two-tier admin hierarchy this is implied by the first rule; it
    stays as its own check so a future middle tier cannot inherit the power
    to mint super_admins.
  - Plain users register themselves; this module never creates role=user.
  - delete_user / update_role are super_admin only and may target anyone,
    admins included.

requester_role is always the role loaded from the store for the current
request (auth.dependencies.require_roles), never a token claim.

Last super_admin guard:
  With guard_last_super_admin=True, deleting or demoting the only remaining
  super_admin raises Conflict. The count is repeated inside the DELETE or
  UPDATE statement itself, so two super_admins removing each other at the
  same time cannot both succeed. There is no recovery path without direct
  database access once the last one is gone.
"""

from __future__ import annotations

import logging

from auth.authenticator import Authenticator
from auth.errors import Conflict, Forbidden, NotFound
from auth.models import Principal, Role, Session
from auth.sessions import SessionManager

logger = logging.getLogger("backoffice.auth")


class AdminAccountManager:
    def __init__(
        self,
        authenticator: Authenticator,
        sessions: SessionManager,
        guard_last_super_admin: bool = True,
    ) -> None:
        self.authenticator = authenticator
        self.sessions = sessions
        self.store = sessions.store
        self.guard_last_super_admin = guard_last_super_admin

    def login_admin(self, email: str, password: str) -> Session:
        """Admin login path: credentials first, then role, then admin-marked tokens."""
        principal = self.authenticator.validate_admin(email, password)
        return self.sessions.login(principal, admin=True)

    def create_admin(
        self,
        requester_role: Role,
        username: str,
        email: str,
        password: str,
        role: Role = Role.ADMIN,
    ) -> Session:
        """Create an admin or super_admin account and open its first session."""
        requester_role = Role(requester_role)
        role = Role(role)
        if requester_role is not Role.SUPER_ADMIN:
            raise Forbidden("Only super admins can create admin accounts")
        if role is Role.SUPER_ADMIN and requester_role is not Role.SUPER_ADMIN:
            raise Forbidden("Cannot create super admin account")
        if not role.at_least(Role.ADMIN):
            raise Forbidden("Admin accounts must have role admin or super_admin")

        principal = self.store.create(username, email, self.sessions.passwords.hash(password), role)
        logger.info("Created %s account %s", role.value, principal.id)
        return self.sessions.login(principal, admin=True)

    def list_users(self) -> list[Principal]:
        return self.store.list_all()

    def delete_user(self, requester_role: Role, user_id: int) -> None:
        self._require_super_admin(requester_role)
        target = self.store.find_by_id(user_id)
        if target is None:
            raise NotFound()
        if target.role is Role.SUPER_ADMIN:
            self._check_last_super_admin("delete")
        if not self.store.delete(user_id, keep_last_super_admin=self.guard_last_super_admin):
            self._raise_write_refused(user_id, "delete")
        logger.info("Deleted user %s", user_id)

    def update_role(self, requester_role: Role, user_id: int, role: Role) -> Principal:
        """Change a principal's role and end its session.

        Clearing the refresh hash forces re-authentication, so the new role
        reaches the account's tokens no later than its current access token
        expiry.
        """
        self._require_super_admin(requester_role)
        role = Role(role)
        target = self.store.find_by_id(user_id)
        if target is None:
            raise NotFound()
        demotion = role is not Role.SUPER_ADMIN
        if target.role is Role.SUPER_ADMIN and demotion:
            self._check_last_super_admin("demote")
        if not self.store.update_role(user_id, role, keep_last_super_admin=self.guard_last_super_admin and demotion):
            self._raise_write_refused(user_id, "demote")
        self.store.update_refresh_token_hash(user_id, None)
        logger.info("Changed role of user %s from %s to %s", user_id, target.role.value, role.value)

        updated = self.store.find_by_id(user_id)
        if updated is None:
            raise NotFound()
        return updated.public()

    @staticmethod
    def _require_super_admin(requester_role: Role) -> None:
        if Role(requester_role) is not Role.SUPER_ADMIN:
            raise Forbidden("Super admin privileges required.")

    def _check_last_super_admin(self, action: str) -> None:
        if self.guard_last_super_admin and self.store.count_by_role(Role.SUPER_ADMIN) <= 1:
            raise Conflict(f"Cannot {action} the last super admin account.")

    def _raise_write_refused(self, user_id: int, action: str) -> None:
        """A guarded write changed no row: the target vanished, or it became the last super_admin.

        The second case is a concurrent request removing the other super_admin
        between the pre-check above and this write.
        """
        if self.store.find_by_id(user_id) is None:
            raise NotFound()
        raise Conflict(f"Cannot {action} the last super admin account.")
