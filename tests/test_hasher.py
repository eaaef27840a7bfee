"""Unit tests for auth/hasher.py -- bcrypt hashing of passwords and refresh tokens.

Covers:
- hash then verify round-trips for the same plaintext
- verify rejects any other plaintext and malformed digests
- salts differ between two hashes of the same plaintext
- prehash mode distinguishes long inputs that share a 72-byte prefix
- rounds outside bcrypt's range are rejected
"""

import bcrypt
import pytest

from auth.hasher import PasswordHasher


class TestPasswordHasher:
    @pytest.mark.parametrize("plaintext", ["Valid1!pass", "a", "pässwörd-ünïcode", " spaced out "])
    def test_hash_then_verify_is_true(self, passwords: PasswordHasher, plaintext: str) -> None:
        digest = passwords.hash(plaintext)
        assert passwords.verify(plaintext, digest) is True

    @pytest.mark.parametrize("other", ["Valid1!pasS", "Valid1!pas", "", "Valid1!pass "])
    def test_verify_other_plaintext_is_false(self, passwords: PasswordHasher, other: str) -> None:
        digest = passwords.hash("Valid1!pass")
        assert passwords.verify(other, digest) is False

    def test_digest_is_salted(self, passwords: PasswordHasher) -> None:
        assert passwords.hash("Valid1!pass") != passwords.hash("Valid1!pass")

    def test_digest_embeds_cost(self) -> None:
        digest = PasswordHasher(rounds=5).hash("Valid1!pass")
        assert digest.startswith("$2b$05$")

    def test_digest_is_not_plaintext(self, passwords: PasswordHasher) -> None:
        assert "Valid1!pass" not in passwords.hash("Valid1!pass")

    @pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$04$short"])
    def test_malformed_digest_is_mismatch(self, passwords: PasswordHasher, digest: str) -> None:
        assert passwords.verify("Valid1!pass", digest) is False

    def test_dummy_hash_never_matches_user_input(self, passwords: PasswordHasher) -> None:
        assert passwords.verify("Valid1!pass", passwords.dummy_hash) is False

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rounds_out_of_range_rejected(self, rounds: int) -> None:
        with pytest.raises(ValueError):
            PasswordHasher(rounds=rounds)


class TestRefreshTokenHasher:
    def test_long_inputs_with_shared_prefix_are_distinguished(self, refresh_hasher: PasswordHasher) -> None:
        """Two JWT-length strings identical in their first 100 bytes must not cross-verify."""
        prefix = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9." + "x" * 100
        first, second = prefix + "first", prefix + "second"
        digest = refresh_hasher.hash(first)
        assert refresh_hasher.verify(first, digest) is True
        assert refresh_hasher.verify(second, digest) is False

    def test_prehash_digest_is_standard_bcrypt(self, refresh_hasher: PasswordHasher) -> None:
        digest = refresh_hasher.hash("token-value")
        assert bcrypt.checkpw(b"token-value", digest.encode()) is False
        assert digest.startswith("$2b$04$")

    def test_password_and_refresh_hashers_are_not_interchangeable(
        self, passwords: PasswordHasher, refresh_hasher: PasswordHasher
    ) -> None:
        digest = passwords.hash("same-input")
        assert refresh_hasher.verify("same-input", digest) is False
