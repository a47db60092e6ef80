"""Tests for token endpoint client authentication."""

import base64

import pytest
from starlette.requests import Request

from fastoauth.errors import InvalidClientError, InvalidRequestError
from fastoauth.server.auth.client_auth import (
    ClientAuthenticator,
    parse_basic_credentials,
)


def make_request(authorization: str | None = None) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({"type": "http", "method": "POST", "headers": headers})


def basic(value: str) -> str:
    return "Basic " + base64.b64encode(value.encode()).decode()


class TestParseBasicCredentials:
    def test_decodes(self):
        assert parse_basic_credentials(basic("client:secret")) == ("client", "secret")

    def test_form_urlencoded_parts(self):
        assert parse_basic_credentials(basic("my%20client:s%3Acret")) == (
            "my client",
            "s:cret",
        )

    def test_missing_secret(self):
        assert parse_basic_credentials(basic("client")) == ("client", None)

    def test_other_scheme(self):
        assert parse_basic_credentials("Bearer abc") is None

    def test_malformed(self):
        with pytest.raises(InvalidRequestError):
            parse_basic_credentials("Basic !!!not-base64!!!")


class TestClientAuthenticator:
    @pytest.fixture
    def authenticator(self, client_store, clock):
        return ClientAuthenticator(client_store, clock)

    async def test_client_secret_post(self, authenticator):
        client = await authenticator.authenticate(
            make_request(), {"client_id": "test-client", "client_secret": "test-secret"}
        )
        assert client.client_id == "test-client"

    async def test_client_secret_basic(self, authenticator):
        client = await authenticator.authenticate(
            make_request(basic("test-client:test-secret")), {}
        )
        assert client.client_id == "test-client"

    async def test_body_client_id_takes_precedence(self, authenticator):
        client = await authenticator.authenticate(
            make_request(basic("test-client:test-secret")),
            {"client_id": "public-client"},
        )
        assert client.client_id == "public-client"

    async def test_public_client_needs_no_secret(self, authenticator):
        client = await authenticator.authenticate(
            make_request(), {"client_id": "public-client"}
        )
        assert client.client_secret is None

    async def test_no_credentials(self, authenticator):
        with pytest.raises(InvalidRequestError, match="client_id"):
            await authenticator.authenticate(make_request(), {})

    async def test_unknown_client(self, authenticator):
        with pytest.raises(InvalidClientError, match="Invalid client_id"):
            await authenticator.authenticate(make_request(), {"client_id": "nobody"})

    async def test_missing_secret(self, authenticator):
        with pytest.raises(InvalidClientError, match="Client secret is required"):
            await authenticator.authenticate(
                make_request(), {"client_id": "test-client"}
            )

    async def test_wrong_secret(self, authenticator):
        with pytest.raises(InvalidClientError, match="Invalid client_secret"):
            await authenticator.authenticate(
                make_request(), {"client_id": "test-client", "client_secret": "nope"}
            )

    async def test_expired_secret(self, authenticator, client_store, clock):
        client = await client_store.get_client("test-client")
        client_store.add_client(
            client.model_copy(update={"client_secret_expires_at": int(clock()) - 1})
        )
        with pytest.raises(InvalidClientError, match="expired"):
            await authenticator.authenticate(
                make_request(),
                {"client_id": "test-client", "client_secret": "test-secret"},
            )
