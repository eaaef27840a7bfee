"""
auth/hasher.py -- bcrypt hashing for passwords and stored refresh tokens.

One hashing capability, parameterized by cost:
  - Passwords: rounds >= 12. Low-entropy human secrets need bcrypt's
    intentional slowness.
  - Refresh tokens: cheaper rounds (default 10). They are random, high-entropy
    JWTs, but the stored digest must still be non-reversible so a database
    leak does not hand out live sessions.

bcrypt only reads the first 72 bytes of its input (bcrypt >= 4.1 refuses
longer input outright). Passwords are capped at 72 bytes by request
validation and truncated here as a backstop. Refresh tokens are much longer
and every token for one account starts with the same header and claims, so
bcrypt over the raw token would match ANY refresh token of that account.
prehash=True feeds bcrypt the base64 SHA-256 of the input instead, which is
44 bytes and covers the whole token.

Using bcrypt directly rather than passlib: passlib's wrap-bug detection
creates a password longer than 72 bytes, which bcrypt 4.x rejects.
"""

from __future__ import annotations

import base64
import hashlib

import bcrypt

_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing with a fixed work factor.

    Usage:
        passwords = PasswordHasher(rounds=12)
        digest = passwords.hash("Valid1!pass")
        passwords.verify("Valid1!pass", digest)  # True
    """

    def __init__(self, rounds: int = 12, prehash: bool = False) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds
        self.prehash = prehash
        # Timing equalization digest: verifying against it costs the same as
        # verifying a real digest of this hasher's cost.
        self.dummy_hash = self.hash("backoffice_timing_dummy")

    def _prepare(self, plaintext: str) -> bytes:
        raw = plaintext.encode("utf-8")
        if self.prehash:
            return base64.b64encode(hashlib.sha256(raw).digest())
        return raw[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest with embedded salt and cost."""
        return bcrypt.hashpw(self._prepare(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext matches digest. Malformed digests are a mismatch.

        bcrypt.checkpw compares in constant time.
        """
        try:
            return bcrypt.checkpw(self._prepare(plaintext), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False
