"""
auth/service.py -- Registration and login orchestration.

AuthService glues the credential store, the password hasher, and the token
service together. It holds no state of its own beyond those three
collaborators, all injected through the constructor.

Security:
  Login never says which half of the credential was wrong. Unknown email and
  wrong password raise the same InvalidCredentials with the same message, and
  the unknown-email path still runs a full bcrypt check (verify_dummy) so
  both take the same time.

  Plaintext passwords are passed straight to the hasher and never logged.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging

from auth.models import LoginResult, User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.errors import InvalidCredentials, NotFound, ValidationFailed

logger = logging.getLogger("notesafe.auth")

_BAD_CREDENTIALS = "Invalid email or password."


class AuthService:
    """Usage:
    service = AuthService(SqlUserStore(engine), PasswordHasher(12), TokenService(secret))
    user = service.register("a@x.com", "pw1")
    result = service.login("a@x.com", "pw1")   # result.token
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(self, email: str, password: str) -> User:
        """Create an account and return it (id and email populated).

        Raises ValidationFailed before the store is touched if either field is
        empty or the password exceeds bcrypt's 72-byte input limit. Raises
        DuplicateIdentity (from the store) if the email is taken.
        """
        _require(email, password)
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailed(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes.",
                {"field": "password"},
            )

        password_hash = self.hasher.hash(password)
        user_id = self.store.create_user(email, password_hash)
        logger.info("User registered (user_id=%d)", user_id)
        return User(id=user_id, email=email, password_hash=password_hash)

    def login(self, email: str, password: str) -> LoginResult:
        """Check credentials and issue a token.

        Raises InvalidCredentials for an empty field, an unknown email, or a
        wrong password, indistinguishably. No account has an empty email or
        password, so empty input takes the unknown-account path.
        """
        if not email or not email.strip() or not password:
            self.hasher.verify_dummy(password)
            logger.warning("Failed login attempt (empty credentials)")
            raise InvalidCredentials(_BAD_CREDENTIALS)

        try:
            user = self.store.get_by_email(email)
        except NotFound:
            self.hasher.verify_dummy(password)
            logger.warning("Failed login attempt (unknown account)")
            raise InvalidCredentials(_BAD_CREDENTIALS) from None

        if not self.hasher.verify(password, user.password_hash):
            logger.warning("Failed login attempt (user_id=%d)", user.id)
            raise InvalidCredentials(_BAD_CREDENTIALS)

        token = self.tokens.issue(user.id)
        logger.info("User logged in (user_id=%d)", user.id)
        return LoginResult(user=user, token=token, expires_in=self.tokens.ttl_seconds)


def _require(email: str, password: str) -> None:
    if not email or not email.strip():
        raise ValidationFailed("Email is required.", {"field": "email"})
    if not password:
        raise ValidationFailed("Password is required.", {"field": "password"})
