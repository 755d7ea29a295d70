"""
tests/test_identity.py -- Unit tests for auth/identity.py.

Covers:
  - parse_bearer: missing, malformed, and well-formed Authorization headers
  - IdentityResolver: valid token -> RequestIdentity; every token failure
    collapses to Unauthenticated with the failure kind kept as .reason
"""

from __future__ import annotations

import pytest

from auth.identity import IdentityResolver, parse_bearer
from auth.models import RequestIdentity
from auth.tokens import TokenService
from core.errors import Unauthenticated


class TestParseBearer:
    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header) -> None:
        with pytest.raises(Unauthenticated) as exc_info:
            parse_bearer(header)
        assert exc_info.value.reason == "missing_header"

    @pytest.mark.parametrize(
        "header",
        ["Bearer", "Basic dXNlcjpwYXNz", "Token abc", "Bearer a b", "abc"],
    )
    def test_malformed_header(self, header: str) -> None:
        with pytest.raises(Unauthenticated) as exc_info:
            parse_bearer(header)
        assert exc_info.value.reason == "malformed_header"

    @pytest.mark.parametrize("scheme", ["Bearer", "bearer", "BEARER"])
    def test_scheme_is_case_insensitive(self, scheme: str) -> None:
        assert parse_bearer(f"{scheme} abc.def.ghi") == "abc.def.ghi"


class TestIdentityResolver:
    def test_valid_token(self, tokens: TokenService) -> None:
        identity = IdentityResolver(tokens).resolve(f"Bearer {tokens.issue(7)}")
        assert identity == RequestIdentity(user_id=7)

    def test_garbage_token(self, tokens: TokenService) -> None:
        with pytest.raises(Unauthenticated) as exc_info:
            IdentityResolver(tokens).resolve("Bearer not-a-token")
        assert exc_info.value.reason == "token_malformed"

    def test_expired_token(self, tokens: TokenService) -> None:
        past = TokenService(secret_key="x" * 48, ttl_seconds=60, clock=lambda: 1_000)
        current = TokenService(secret_key="x" * 48, ttl_seconds=60, clock=lambda: 2_000)
        with pytest.raises(Unauthenticated) as exc_info:
            IdentityResolver(current).resolve(f"Bearer {past.issue(7)}")
        assert exc_info.value.reason == "token_expired"

    def test_token_from_other_secret(self, tokens: TokenService) -> None:
        foreign = TokenService(secret_key="y" * 48)
        with pytest.raises(Unauthenticated) as exc_info:
            IdentityResolver(tokens).resolve(f"Bearer {foreign.issue(7)}")
        assert exc_info.value.reason == "token_bad_signature"

    def test_client_message_is_uniform(self, tokens: TokenService) -> None:
        """Whatever the reason, the message a client could see is the same."""
        resolver = IdentityResolver(tokens)
        messages = set()
        for header in (None, "Basic abc", "Bearer garbage"):
            with pytest.raises(Unauthenticated) as exc_info:
                resolver.resolve(header)
            messages.add(exc_info.value.message)
        assert messages == {"Authentication required."}
