"""
authgate.auth.passwords

Salted, constant-time secret hashing (argon2id).

Responsibilities:
- Hash secrets when credential records are provisioned.
- Verify a presented secret against a stored encoded hash, using the
  algorithm parameters recorded in that hash.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class SecretHasher:
    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self._hasher = hasher or PasswordHasher()

    def hash(self, secret: str) -> str:
        if not secret:
            raise ValueError("secret must not be empty")
        return self._hasher.hash(secret)

    def verify(self, secret: str, encoded_hash: str | None) -> bool:
        # No stored hash, or a hash in a foreign format, never falls back to plaintext.
        if not encoded_hash or not secret:
            return False
        try:
            return self._hasher.verify(encoded_hash, secret)
        except (VerificationError, InvalidHashError):
            return False


# --- Module Notes -----------------------------------------------------------
# argon2 verification reads time/memory/parallelism from the encoded hash, so
# records created with older parameters still verify after defaults change.
