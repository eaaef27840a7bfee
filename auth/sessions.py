"""
auth/sessions.py -- Registration, login, logout, and refresh-token rotation.

Ties the Authenticator, TokenIssuer, and UserStore together. Holds no state
of its own: the only session record is the single refresh-token hash stored
against each principal.

Refresh-token rotation:
  Every successful refresh overwrites the stored hash with the hash of the
  newly issued refresh token. The token just presented no longer matches, so
  replaying it fails with Forbidden. Logout clears the hash, which revokes
  the outstanding refresh token without any blacklist.

Single active session:
  One hash slot per account. A login from a second device overwrites the
  first device's hash; the first device's next refresh is Forbidden.
  Concurrent logins/refreshes resolve last-write-wins at the store.
"""

from __future__ import annotations

import logging

from auth.errors import Forbidden, NotFound, Unauthorized
from auth.hasher import PasswordHasher
from auth.models import Principal, Role, Session, TokenPair
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("backoffice.auth")


class SessionManager:
    def __init__(
        self,
        store: UserStore,
        issuer: TokenIssuer,
        passwords: PasswordHasher,
        refresh_tokens: PasswordHasher,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.passwords = passwords
        self.refresh_tokens = refresh_tokens

    def register(self, username: str, email: str, password: str) -> Session:
        """Create a role=user account and open its first session.

        Raises Conflict if the email or username is already registered.
        """
        principal = self.store.create(username, email, self.passwords.hash(password), Role.USER)
        logger.info("Registered user %s", principal.id)
        return self.login(principal)

    def login(self, principal: Principal, admin: bool = False) -> Session:
        """Issue an access/refresh pair and store the refresh hash (overwriting any prior one).

        `principal` must already be authenticated (Authenticator.validate) or
        freshly created.
        """
        pair = self._issue_and_store(principal, admin)
        logger.info("Session opened for user %s", principal.id)
        return Session(principal=principal.public(), access_token=pair.access_token, refresh_token=pair.refresh_token)

    def logout(self, subject: int) -> None:
        """Clear the stored refresh hash. Idempotent; NotFound only for unknown subjects."""
        if not self.store.update_refresh_token_hash(int(subject), None):
            raise NotFound()
        logger.info("Session closed for user %s", subject)

    def refresh(
        self,
        subject: int,
        presented_refresh_token: str,
        admin: bool = False,
        email: str | None = None,
    ) -> TokenPair:
        """Exchange a refresh token for a new pair and rotate the stored hash.

        The token must already have passed TokenIssuer.verify(..., REFRESH);
        this step only binds it to the server-side hash. Forbidden when the
        account is gone, its email differs from the token's `email` claim,
        it has no active session, or the token is not the one most recently
        issued. The rotation is a compare-and-swap on the stored hash, so a
        token raced through two concurrent refreshes wins at most once.
        """
        principal = self.store.find_by_id(int(subject))
        if principal is None or not principal.refresh_token_hash:
            logger.warning("Refresh rejected for user %s: no active session", subject)
            raise Forbidden("Access Denied")
        if email is not None and principal.email != email:
            logger.warning("Refresh rejected for user %s: token issued to another account", subject)
            raise Forbidden("Access Denied")
        if not self.refresh_tokens.verify(presented_refresh_token, principal.refresh_token_hash):
            logger.warning("Refresh rejected for user %s: token mismatch", subject)
            raise Forbidden("Access Denied")
        pair = self._issue_and_store(principal, admin, expected_hash=principal.refresh_token_hash)
        if pair is None:
            logger.warning("Refresh rejected for user %s: token already rotated", subject)
            raise Forbidden("Access Denied")
        return pair

    def profile(self, subject: int) -> Principal:
        """Return the sanitized principal behind a verified token's subject."""
        principal = self.store.find_by_id(int(subject))
        if principal is None:
            raise Unauthorized("User not found")
        return principal.public()

    def _issue_and_store(
        self,
        principal: Principal,
        admin: bool,
        expected_hash: str | None = None,
    ) -> TokenPair | None:
        """Issue a pair and store its refresh hash. None if expected_hash no longer matched."""
        # Role comes from the store record, not from any presented claim.
        pair = self.issuer.issue_pair(principal.subject, principal.email, principal.role, admin=admin)
        stored = self.store.update_refresh_token_hash(
            principal.id,
            self.refresh_tokens.hash(pair.refresh_token),
            expected_hash=expected_hash,
        )
        if expected_hash is not None and not stored:
            return None
        return pair
