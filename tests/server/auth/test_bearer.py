"""Tests for bearer token authentication."""

import pytest
from starlette.requests import Request

from fastoauth.errors import InvalidClientError, InvalidTokenError
from fastoauth.server.auth.auth import TokenVerifier
from fastoauth.server.auth.bearer import BearerAuthenticator, extract_bearer_token
from fastoauth.server.auth.models import AccessToken


class StaticVerifier(TokenVerifier):
    def __init__(self, tokens: dict[str, AccessToken], raises: Exception | None = None):
        super().__init__()
        self.tokens = tokens
        self.raises = raises

    async def verify_access_token(self, token: str) -> AccessToken | None:
        if self.raises is not None:
            raise self.raises
        return self.tokens.get(token)


def make_request(authorization: str | None = None) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({"type": "http", "method": "GET", "headers": headers})


@pytest.fixture
def verifier(clock):
    return StaticVerifier(
        {
            "good": AccessToken(
                token="good",
                client_id="c",
                scopes=["read", "write"],
                expires_at=clock() + 60,
            ),
            "expired": AccessToken(
                token="expired", client_id="c", scopes=["read"], expires_at=clock() - 1
            ),
            "forever": AccessToken(token="forever", client_id="c", scopes=["read"]),
        }
    )


class TestExtractBearerToken:
    def test_extracts(self):
        assert extract_bearer_token("Bearer abc") == "abc"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bEaReR abc") == "abc"

    @pytest.mark.parametrize("value", [None, "", "Basic abc", "Bearer", "Bearer   "])
    def test_invalid(self, value):
        with pytest.raises(InvalidTokenError):
            extract_bearer_token(value)


class TestBearerAuthenticator:
    async def test_valid_token(self, verifier, clock):
        authenticator = BearerAuthenticator(verifier, required_scopes=["read"], clock=clock)
        result = await authenticator.authenticate(make_request("Bearer good"))
        assert result.success
        assert result.access_token is not None
        assert result.access_token.token == "good"
        assert result.error_response is None

    async def test_missing_header(self, verifier, clock):
        authenticator = BearerAuthenticator(verifier, clock=clock)
        result = await authenticator.authenticate(make_request())
        assert not result.success
        assert result.error_response is not None
        assert result.error_response.status_code == 401
        assert result.error_response.headers["www-authenticate"] == (
            'Bearer error="invalid_token", '
            'error_description="Missing Authorization header"'
        )

    async def test_unknown_token(self, verifier, clock):
        authenticator = BearerAuthenticator(verifier, clock=clock)
        result = await authenticator.authenticate(make_request("Bearer unknown"))
        assert result.error_response is not None
        assert result.error_response.status_code == 401

    async def test_expired_token(self, verifier, clock):
        authenticator = BearerAuthenticator(verifier, clock=clock)
        result = await authenticator.authenticate(make_request("Bearer expired"))
        assert result.error_response is not None
        assert result.error_response.status_code == 401
        assert "Token has expired" in result.error_response.headers["www-authenticate"]

    async def test_token_without_expiry(self, verifier, clock):
        authenticator = BearerAuthenticator(verifier, clock=clock)
        result = await authenticator.authenticate(make_request("Bearer forever"))
        assert result.error_response is not None
        assert result.error_response.status_code == 401
        assert "no expiration" in result.error_response.headers["www-authenticate"]

    async def test_insufficient_scope(self, verifier, clock):
        authenticator = BearerAuthenticator(
            verifier,
            required_scopes=["admin"],
            resource_metadata_url="https://api.example.com/.well-known/oauth-protected-resource",
            clock=clock,
        )
        result = await authenticator.authenticate(make_request("Bearer good"))
        assert result.error_response is not None
        assert result.error_response.status_code == 403
        assert result.error_response.headers["www-authenticate"] == (
            'Bearer error="insufficient_scope", '
            'error_description="Insufficient scope", '
            'resource_metadata="https://api.example.com/.well-known/oauth-protected-resource"'
        )

    async def test_verifier_raising_invalid_token(self, clock):
        authenticator = BearerAuthenticator(
            StaticVerifier({}, raises=InvalidTokenError("revoked")), clock=clock
        )
        result = await authenticator.authenticate(make_request("Bearer x"))
        assert result.error_response is not None
        assert result.error_response.status_code == 401

    async def test_verifier_raising_other_oauth_error(self, clock):
        authenticator = BearerAuthenticator(
            StaticVerifier({}, raises=InvalidClientError("odd")), clock=clock
        )
        result = await authenticator.authenticate(make_request("Bearer x"))
        assert result.error_response is not None
        assert result.error_response.status_code == 500
        assert "www-authenticate" not in result.error_response.headers

    async def test_verifier_crashing(self, clock):
        authenticator = BearerAuthenticator(
            StaticVerifier({}, raises=RuntimeError("db down")), clock=clock
        )
        result = await authenticator.authenticate(make_request("Bearer x"))
        assert result.error_response is not None
        assert result.error_response.status_code == 500
        assert b"db down" not in result.error_response.body

    def test_quotes_in_description_are_replaced(self, verifier):
        authenticator = BearerAuthenticator(verifier)
        header = authenticator.www_authenticate(InvalidTokenError('bad "token"'))
        assert header == "Bearer error=\"invalid_token\", error_description=\"bad 'token'\""
