"""
auth/identity.py -- Bearer header parsing and identity resolution.

IdentityResolver turns the raw Authorization header of a request into a
RequestIdentity or refuses the request. It is framework-agnostic; the FastAPI
glue lives in auth/dependencies.py.

Every token failure kind from auth/tokens.py collapses into one
Unauthenticated error here. The specific kind survives as
Unauthenticated.reason and in the log line, but the HTTP layer renders all of
them identically.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging

from auth.models import RequestIdentity
from auth.tokens import TokenService
from core.errors import TokenError, Unauthenticated

logger = logging.getLogger("notesafe.auth")

_SCHEME = "bearer"


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header value.

    The scheme is matched case-insensitively (RFC 7235). Exactly one
    credential must follow it.
    """
    if not authorization:
        raise Unauthenticated(reason="missing_header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != _SCHEME:
        raise Unauthenticated(reason="malformed_header")
    return parts[1]


class IdentityResolver:
    """Verifies bearer tokens and produces RequestIdentity values.

    Holds a TokenService (and through it the signing secret) passed in at
    startup. Stateless per request.
    """

    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    def resolve(self, authorization: str | None) -> RequestIdentity:
        token = parse_bearer(authorization)
        try:
            user_id = self.tokens.verify(token)
        except TokenError as exc:
            logger.info("Rejected bearer token (%s)", exc.code)
            raise Unauthenticated(reason=exc.code) from exc
        return RequestIdentity(user_id=user_id)
