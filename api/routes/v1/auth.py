"""
api/routes/v1/auth.py -- Registration and login REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create an account; 201 {id, email}
  POST /api/v1/auth/login      -- exchange credentials for a bearer token

Both routes are public: they are how a client obtains a token in the first
place, so the identity dependency is NOT attached here.

Handlers are plain `def` so FastAPI runs them in its thread pool. bcrypt is
deliberately slow; running it on the event loop would stall every other
request.

Errors (ValidationFailed, DuplicateIdentity, InvalidCredentials, internal
failures) are raised by AuthService and rendered by the exception handlers in
api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.service import AuthService

router = APIRouter()


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account. 409 if the email is already registered."""
    service: AuthService = request.app.state.auth_service
    user = service.register(body.email, body.password)
    return UserResponse.from_user(user)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Unknown email and wrong password produce the same 401 body.
    """
    service: AuthService = request.app.state.auth_service
    result = service.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            email=result.user.email,
            token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
