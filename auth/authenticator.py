"""
auth/authenticator.py -- Email/password validation with timing equalization.

validate() never reveals whether an email exists:
  - Unknown email: bcrypt still runs, against the hasher's dummy digest, so the
    response takes as long as a wrong-password check.
  - Unknown email and wrong password raise the same Unauthorized with the
    same message.

validate_admin() adds the role gate strictly AFTER the credentials check.
Invalid credentials are always Unauthorized whatever the role; only a
correct password on a non-privileged account earns Forbidden.
"""

from __future__ import annotations

import logging

from auth.errors import Forbidden, Unauthorized
from auth.hasher import PasswordHasher
from auth.models import Principal, Role
from auth.store import UserStore

logger = logging.getLogger("backoffice.auth")

_INVALID_CREDENTIALS = "Invalid credentials"


class Authenticator:
    def __init__(self, store: UserStore, passwords: PasswordHasher) -> None:
        self.store = store
        self.passwords = passwords

    def validate(self, email: str, password: str) -> Principal:
        """Return the sanitized principal for a correct email/password pair.

        Raises Unauthorized otherwise. Do NOT inline find_by_email() +
        verify() at call sites -- that re-introduces the timing leak.
        """
        principal = self.store.find_by_email(email)
        if principal is None or not principal.password_hash:
            # Equalize timing -- do NOT return early before running bcrypt.
            self.passwords.verify(password, self.passwords.dummy_hash)
            logger.info("Failed login attempt")
            raise Unauthorized(_INVALID_CREDENTIALS)
        if not self.passwords.verify(password, principal.password_hash):
            logger.info("Failed login attempt")
            raise Unauthorized(_INVALID_CREDENTIALS)
        return principal.public()

    def validate_admin(self, email: str, password: str) -> Principal:
        """Like validate(), then require role admin or super_admin (Forbidden otherwise)."""
        principal = self.validate(email, password)
        if not principal.role.at_least(Role.ADMIN):
            logger.warning("Non-admin user %s attempted admin login", principal.id)
            raise Forbidden("Access denied. Admin privileges required.")
        return principal
