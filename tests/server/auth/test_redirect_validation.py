"""Tests for redirect URI resolution in authorization requests."""

import pytest

from fastoauth.errors import InvalidRequestError
from fastoauth.server.auth.redirect_validation import (
    construct_redirect_uri,
    resolve_redirect_uri,
)


class TestResolveRedirectUri:
    """Test choosing the redirect target for a client."""

    def test_single_registered_uri_is_default(self, confidential_client):
        assert resolve_redirect_uri(confidential_client, None) == (
            "https://client.example.com/callback",
            False,
        )

    def test_explicit_registered_uri(self, public_client):
        assert resolve_redirect_uri(
            public_client, "http://localhost:3000/callback"
        ) == ("http://localhost:3000/callback", True)

    def test_multiple_uris_require_explicit_choice(self, public_client):
        with pytest.raises(InvalidRequestError, match="multiple registered URIs"):
            resolve_redirect_uri(public_client, None)

    def test_unregistered_uri(self, confidential_client):
        with pytest.raises(InvalidRequestError, match="Unregistered redirect_uri"):
            resolve_redirect_uri(confidential_client, "https://evil.example.com/cb")

    def test_match_is_exact(self, confidential_client):
        """Trailing slashes and case differences are not the same URI."""
        for uri in (
            "https://client.example.com/callback/",
            "https://CLIENT.example.com/callback",
            "https://client.example.com/callback?x=1",
        ):
            with pytest.raises(InvalidRequestError):
                resolve_redirect_uri(confidential_client, uri)


class TestConstructRedirectUri:
    def test_adds_params(self):
        assert (
            construct_redirect_uri("https://c.example.com/cb", code="abc", state="s1")
            == "https://c.example.com/cb?code=abc&state=s1"
        )

    def test_keeps_existing_query(self):
        assert (
            construct_redirect_uri("https://c.example.com/cb?tenant=a", code="abc")
            == "https://c.example.com/cb?tenant=a&code=abc"
        )

    def test_skips_none(self):
        assert (
            construct_redirect_uri("https://c.example.com/cb", code="abc", state=None)
            == "https://c.example.com/cb?code=abc"
        )

    def test_encodes_values(self):
        uri = construct_redirect_uri(
            "https://c.example.com/cb", error_description="a b&c"
        )
        assert uri == "https://c.example.com/cb?error_description=a+b%26c"
