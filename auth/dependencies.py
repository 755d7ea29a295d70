"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_request_identity() is the identity middleware for owner-scoped routes.
Attach it at router level so a request that fails authentication is
short-circuited before the handler runs:

    router = APIRouter(dependencies=[Depends(get_request_identity)])

and declare it again on each handler to receive the resolved identity as an
explicit parameter. FastAPI caches dependency results per request, so the
token is verified once.

Nothing is written to request.state. The identity travels only as a return
value / function argument.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.identity import IdentityResolver
from auth.models import RequestIdentity


def get_request_identity(request: Request) -> RequestIdentity:
    """Resolve the caller from the Authorization header.

    Raises Unauthenticated (rendered as 401 by api/main.py) on a missing,
    malformed, expired, or otherwise invalid bearer token.

    Use as a FastAPI dependency:
        @router.get("/notes")
        def route(identity: RequestIdentity = Depends(get_request_identity)): ...
    """
    resolver: IdentityResolver = request.app.state.identity_resolver
    return resolver.resolve(request.headers.get("Authorization"))
