"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide secret
       and carry sub (user id as a string), iat, exp, and iss. The secret is
       handed to TokenService's constructor at startup; this module holds no
       key material of its own.

  Verification is staged so each failure has its own exception type
  (core/errors.py). The stages run in a fixed order:

    1. structure   -- three segments, decodable header and claims object,
                      required claims present with integer timestamps,
                      exp > iat                              -> TokenMalformed
    2. algorithm   -- header alg must equal the configured alg. Checked
                      before any key is used, which shuts out alg=none and
                      HS/RS confusion attacks               -> TokenWrongAlgorithm
    3. signature   -- HMAC over header.claims               -> TokenBadSignature
    4. issuer      -- iss must equal the configured issuer  -> TokenInvalidIssuer
    5. expiry      -- now >= exp is expired                 -> TokenExpired
    6. subject     -- sub must parse as a positive int      -> TokenInvalidSubject

  Stage 3 uses jose only for the signature check (all jose claim checks are
  switched off). jose treats a token as live while now <= exp; the boundary
  here is now < exp, so expiry is checked by hand.

  Claims are built in a fixed key order (sub, iat, exp, iss) and jose
  serializes them with compact separators, so the signed bytes for a given
  (user, instant) are deterministic.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from core.errors import (
    SigningFailed,
    TokenBadSignature,
    TokenExpired,
    TokenInvalidIssuer,
    TokenInvalidSubject,
    TokenMalformed,
    TokenWrongAlgorithm,
)

logger = logging.getLogger("notesafe.auth")

DEFAULT_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("sub", "iat", "exp", "iss")

# jose options for stage 3: verify the signature and nothing else.
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_aud": False,
    "verify_iat": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
    "verify_at_hash": False,
}


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""

    subject: int
    issued_at: int
    expires_at: int
    issuer: str


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenService:
    """Issues and verifies signed, time-bounded identity tokens.

    Instances are immutable after construction and safe to share between
    request threads.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key, ttl_seconds=900)
        token = tokens.issue(42)
        tokens.verify(token)   # 42
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = 900,
        issuer: str = "notesafe",
        algorithm: str = DEFAULT_ALGORITHM,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret_key")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret_key = secret_key
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.issuer = issuer
        self.algorithm = algorithm

    def _now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, user_id: int) -> str:
        """Return a signed token asserting user_id, valid for ttl_seconds."""
        now = self._now()
        claims = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.ttl_seconds,
            "iss": self.issuer,
        }
        try:
            return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)
        except JOSEError as exc:
            raise SigningFailed("tokens.issue", exc) from exc

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str) -> int:
        """Return the user id a valid token asserts. Raises a TokenError subclass otherwise."""
        return self.decode(token).subject

    def decode(self, token: str) -> TokenClaims:
        """Run every verification stage and return the verified claims."""
        # Stage 1. The claims returned by jwt.decode below are the same bytes,
        # so the structural checks carry over once the signature holds.
        header = self._parse(token)

        # Stage 2
        alg = header.get("alg")
        if alg != self.algorithm:
            raise TokenWrongAlgorithm(f"Token algorithm {alg!r} is not accepted")

        # Stage 3
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options=_SIGNATURE_ONLY,
            )
        except JWTError as exc:
            raise TokenBadSignature("Token signature verification failed") from exc

        # Stage 4
        if claims["iss"] != self.issuer:
            raise TokenInvalidIssuer("Token issuer is not accepted")

        # Stage 5
        if self._now() >= claims["exp"]:
            raise TokenExpired("Token has expired")

        # Stage 6
        return TokenClaims(
            subject=_coerce_subject(claims["sub"]),
            issued_at=claims["iat"],
            expires_at=claims["exp"],
            issuer=claims["iss"],
        )

    def _parse(self, token: str) -> dict:
        """Split and decode without trusting anything. Returns the header."""
        if not isinstance(token, str) or token.count(".") != 2:
            raise TokenMalformed("Token must have three dot-separated segments")
        try:
            header = jwt.get_unverified_header(token)
            claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenMalformed("Token could not be decoded") from exc
        if not isinstance(header, dict):
            raise TokenMalformed("Token header is not an object")

        missing = [name for name in _REQUIRED_CLAIMS if name not in claims]
        if missing:
            raise TokenMalformed(f"Token is missing claims: {', '.join(missing)}")
        if not _is_int(claims["iat"]) or not _is_int(claims["exp"]):
            raise TokenMalformed("Token iat and exp must be integers")
        if claims["exp"] <= claims["iat"]:
            raise TokenMalformed("Token expires before it was issued")
        return header


def _coerce_subject(sub) -> int:
    """Turn the sub claim into a user id.

    Issued tokens carry the id as a decimal string (JWT requires sub to be a
    string). A bare integer is also accepted. Anything else, including ids
    below 1, is rejected.
    """
    if _is_int(sub):
        user_id = sub
    elif isinstance(sub, str) and sub.isascii() and sub.isdigit():
        user_id = int(sub)
    else:
        raise TokenInvalidSubject("Token subject is not a user id")
    if user_id < 1:
        raise TokenInvalidSubject("Token subject is not a user id")
    return user_id
