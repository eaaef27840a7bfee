"""
auth/tokens.py -- JWT issuing and verification for access and refresh tokens.

Security design decisions:
  Two secrets: access tokens are signed with JWT_SECRET, refresh tokens with
       JWT_REFRESH_SECRET. Compromise of one token class does not let an
       attacker mint the other.

  Kind marker: every token carries `kind` ("access" / "refresh"). verify()
       picks the secret from the expected kind AND checks the marker, so an
       access token replayed as a refresh token (or the reverse) fails.

  jti: a random nonce per token. Two tokens issued for the same account in
       the same second would otherwise be byte-identical, and refresh-token
       rotation could not tell the old token from the new one.

  Admin marker: tokens issued through the admin login path carry
       `type: "admin"`. It is advisory only. Privileged routes always
       re-derive the role from the credential store.

  Stale roles: tokens carry the role at issuance time. A demoted account
       keeps its old role claim until its access token expires; the short
       access lifetime bounds that window.

JWT library: python-jose with HS256. Any decode failure (bad signature,
expiry, malformed claims) is reported as Unauthorized -- the route layer
turns that into a 401.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import Unauthorized
from auth.models import Role, TokenClaims, TokenKind, TokenPair
from core.config import Settings

logger = logging.getLogger("backoffice.auth")

_ALGORITHM = "HS256"
_ADMIN_MARKER = "admin"
_REQUIRED_CLAIMS = ("sub", "email", "role", "kind", "exp")


class TokenIssuer:
    """Creates and verifies signed access and refresh tokens.

    Usage:
        issuer = TokenIssuer(access_secret, refresh_secret)
        pair = issuer.issue_pair("42", "alice@x.com", Role.USER)
        claims = issuer.verify(pair.access_token, TokenKind.ACCESS)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: int = 15 * 60,
        refresh_ttl: int = 7 * 24 * 60 * 60,
        admin_access_ttl: int = 60 * 60,
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.admin_access_ttl = admin_access_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=settings.access_token_expire_seconds,
            refresh_ttl=settings.refresh_token_expire_seconds,
            admin_access_ttl=settings.admin_access_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Issuing
    # ------------------------------------------------------------------

    def _encode(self, kind: TokenKind, subject: str, email: str, role: Role, ttl: int, admin: bool) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "email": email,
            "role": Role(role).value,
            "kind": kind.value,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
            "jti": secrets.token_urlsafe(16),
        }
        if admin:
            payload["type"] = _ADMIN_MARKER
        return jwt.encode(payload, self._secrets[kind], algorithm=_ALGORITHM)

    def issue_access(self, subject: str, email: str, role: Role, admin: bool = False) -> str:
        """Sign a short-lived access token. Admin tokens get the admin lifetime."""
        ttl = self.admin_access_ttl if admin else self.access_ttl
        return self._encode(TokenKind.ACCESS, subject, email, role, ttl, admin)

    def issue_refresh(self, subject: str, email: str, role: Role, admin: bool = False) -> str:
        """Sign a long-lived refresh token with the refresh secret."""
        return self._encode(TokenKind.REFRESH, subject, email, role, self.refresh_ttl, admin)

    def issue_pair(self, subject: str, email: str, role: Role, admin: bool = False) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access(subject, email, role, admin=admin),
            refresh_token=self.issue_refresh(subject, email, role, admin=admin),
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, token: str, expected_kind: TokenKind) -> TokenClaims:
        """Check signature, expiry, claim shape, and kind marker.

        Raises Unauthorized on any failure. The error message is the same for
        every failure mode so callers cannot probe which check failed.
        """
        expected_kind = TokenKind(expected_kind)
        try:
            payload = jwt.decode(token, self._secrets[expected_kind], algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", expected_kind.value, exc)
            raise Unauthorized("Invalid or expired token.") from exc

        if any(claim not in payload for claim in _REQUIRED_CLAIMS):
            raise Unauthorized("Invalid or expired token.")
        if payload["kind"] != expected_kind.value:
            logger.warning("Token kind mismatch: expected %s, got %r", expected_kind.value, payload["kind"])
            raise Unauthorized("Invalid or expired token.")
        try:
            role = Role(payload["role"])
            int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise Unauthorized("Invalid or expired token.") from exc

        return TokenClaims(
            subject=payload["sub"],
            email=payload["email"],
            role=role,
            kind=expected_kind,
            expires_at=int(payload["exp"]),
            admin=payload.get("type") == _ADMIN_MARKER,
        )

