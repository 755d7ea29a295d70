"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

The work factor is a constructor argument (Settings.bcrypt_rounds in
production, 4 in tests) rather than a module constant, so test suites do not
pay 2**12 iterations per hash.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging
import secrets

import bcrypt

from core.errors import HashingFailed

logger = logging.getLogger("notesafe.auth")

# bcrypt only looks at the first 72 bytes of input. Longer passwords are
# rejected by AuthService at registration, and never hashed or matched here.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way password hashing with a configurable bcrypt cost.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("secret")
        hasher.verify("secret", digest)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        # Timing equalization dummy digest. Computed once per hasher so the
        # first unknown-account login is not measurably slower than later ones.
        self._dummy_digest = self.hash(secrets.token_hex(16))

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain. A fresh salt is drawn on every call.

        Raises HashingFailed for input over MAX_PASSWORD_BYTES instead of
        letting bcrypt 4.x truncate it.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise HashingFailed("passwords.hash", f"input exceeds {MAX_PASSWORD_BYTES} bytes")
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(encoded, salt).decode("utf-8")
        except (ValueError, TypeError) as exc:
            raise HashingFailed("passwords.hash", exc) from exc

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest.

        bcrypt.checkpw compares in constant time. Input over
        MAX_PASSWORD_BYTES never matches: no digest here was made from it, and
        bcrypt 4.x would otherwise compare only its first 72 bytes. A
        malformed digest fails closed.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except (ValueError, TypeError):
            logger.warning("Password check failed closed (malformed digest)")
            return False

    def verify_dummy(self, plain: str) -> bool:
        """Burn one bcrypt check against the dummy digest. Always returns False.

        Call this when the account does not exist so the response takes as
        long as a wrong-password response and usernames cannot be enumerated
        by timing.
        """
        self.verify(plain, self._dummy_digest)
        return False
