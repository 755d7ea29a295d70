"""
core/errors.py -- Exception taxonomy for NoteSafe.

Every failure a service or store can report is one of these classes. The API
layer owns the mapping to HTTP status codes (api/main.py); nothing below api/
knows about HTTP.

Each class carries a machine-readable `code` so the error envelope can be
built without isinstance ladders, plus an optional `details` dict for
server-side diagnostics. `details` is never echoed to clients for internal
failures.

Hierarchy:
  NoteSafeError
    ValidationFailed       -- required input missing or out of range
    DuplicateIdentity      -- registration conflict on email
    InvalidCredentials     -- login failed (deliberately uniform)
    Unauthenticated        -- missing / invalid bearer token at the edge
    NotFound               -- row absent or owned by someone else
    InternalFailure        -- wraps a lower-layer error with an op tag
      StoreUnavailable
      HashingFailed
      SigningFailed
    TokenError             -- internal token verification failures
      TokenMalformed
      TokenWrongAlgorithm
      TokenBadSignature
      TokenInvalidIssuer
      TokenExpired
      TokenInvalidSubject

Layer rule: core/ is the kernel. No imports from api/, auth/, or notes/.
"""

from __future__ import annotations

from typing import Any, Optional


class NoteSafeError(Exception):
    """Base class for all NoteSafe domain errors."""

    code = "error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationFailed(NoteSafeError):
    code = "validation_failed"


class DuplicateIdentity(NoteSafeError):
    code = "duplicate_identity"


class InvalidCredentials(NoteSafeError):
    code = "invalid_credentials"


class Unauthenticated(NoteSafeError):
    """Raised by the identity resolver. `reason` keeps the internal cause for logs."""

    code = "unauthenticated"

    def __init__(self, message: str = "Authentication required.", reason: str = "missing_token") -> None:
        super().__init__(message, {"reason": reason})
        self.reason = reason


class NotFound(NoteSafeError):
    code = "not_found"


# ---------------------------------------------------------------------------
# Internal failures -- opaque to clients
# ---------------------------------------------------------------------------


class InternalFailure(NoteSafeError):
    """A lower-layer failure tagged with the operation that hit it.

    str(exc) is "<op>: <cause>", the same shape as the log line, so a single
    logger.error("%s", exc) carries both the tag and the cause.
    """

    code = "internal_error"

    def __init__(self, op: str, cause: BaseException | str) -> None:
        super().__init__(f"{op}: {cause}", {"op": op})
        self.op = op
        self.cause = cause


class StoreUnavailable(InternalFailure):
    code = "store_unavailable"


class HashingFailed(InternalFailure):
    code = "hashing_failed"


class SigningFailed(InternalFailure):
    code = "signing_failed"


# ---------------------------------------------------------------------------
# Token verification failures
# ---------------------------------------------------------------------------


class TokenError(NoteSafeError):
    code = "invalid_token"

    def __init__(self, message: str = "Invalid token.") -> None:
        super().__init__(message)


class TokenMalformed(TokenError):
    code = "token_malformed"


class TokenWrongAlgorithm(TokenError):
    code = "token_wrong_algorithm"


class TokenBadSignature(TokenError):
    code = "token_bad_signature"


class TokenInvalidIssuer(TokenError):
    code = "token_invalid_issuer"


class TokenExpired(TokenError):
    code = "token_expired"


class TokenInvalidSubject(TokenError):
    code = "token_invalid_subject"
