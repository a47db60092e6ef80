from collections.abc import AsyncIterator, Awaitable, Callable
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from fastoauth.server.auth.models import OAuthClientInformationFull
from fastoauth.server.auth.providers.in_memory import (
    InMemoryClientStore,
    InMemoryOAuthProvider,
)
from fastoauth.server.auth.settings import (
    AuthSettings,
    ClientRegistrationOptions,
    RevocationOptions,
)
from fastoauth.server.router import OAuthRouter

ISSUER = "https://auth.example.com"

CODE_VERIFIER = "dBjftJeZ4CVP-mJ92K9rmnRq0L0wx2ShzPrgVGfrk7U"
# BASE64URL(SHA256(CODE_VERIFIER)) without padding
CODE_CHALLENGE = "KHMiuOPRfRyx0FA6NG3W0aQU2rVCxJm_O4ttrd4V-r4"


class FakeClock:
    """A controllable replacement for ``time.time``."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


@pytest.fixture
def query() -> Callable[[str], dict[str, str]]:
    """Parse the query string of a URL into a flat dict."""
    return _query


@pytest.fixture
def pkce() -> tuple[str, str]:
    """A known-good (code_verifier, code_challenge) pair."""
    return CODE_VERIFIER, CODE_CHALLENGE


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def confidential_client() -> OAuthClientInformationFull:
    return OAuthClientInformationFull(
        client_id="test-client",
        client_secret="test-secret",
        redirect_uris=["https://client.example.com/callback"],
        scope="read write",
        token_endpoint_auth_method="client_secret_post",
    )


@pytest.fixture
def public_client() -> OAuthClientInformationFull:
    return OAuthClientInformationFull(
        client_id="public-client",
        redirect_uris=[
            "https://public.example.com/callback",
            "http://localhost:3000/callback",
        ],
        scope="read",
        token_endpoint_auth_method="none",
    )


@pytest.fixture
def client_store(confidential_client, public_client) -> InMemoryClientStore:
    return InMemoryClientStore([confidential_client, public_client])


@pytest.fixture
def provider(client_store, clock) -> InMemoryOAuthProvider:
    return InMemoryOAuthProvider(client_store=client_store, clock=clock)


@pytest.fixture
def auth_settings(clock) -> AuthSettings:
    return AuthSettings(
        issuer_url=ISSUER,
        scopes_supported=["read", "write"],
        client_registration_options=ClientRegistrationOptions(enabled=True),
        revocation_options=RevocationOptions(enabled=True),
        clock=clock,
    )


@pytest.fixture
def router(provider, auth_settings) -> OAuthRouter:
    return OAuthRouter(provider, auth_settings)


@pytest.fixture
async def http_client(router) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=router.http_app()), base_url=ISSUER
    ) as client:
        yield client


@pytest.fixture
def obtain_code(http_client) -> Callable[..., Awaitable[str]]:
    """Run the authorization step for ``test-client`` and return the code."""

    async def obtain(
        client_id: str = "test-client",
        redirect_uri: str | None = "https://client.example.com/callback",
        scope: str | None = "read",
        state: str | None = "xyz",
    ) -> str:
        params = {
            "response_type": "code",
            "client_id": client_id,
            "code_challenge": CODE_CHALLENGE,
            "code_challenge_method": "S256",
        }
        if redirect_uri is not None:
            params["redirect_uri"] = redirect_uri
        if scope is not None:
            params["scope"] = scope
        if state is not None:
            params["state"] = state
        response = await http_client.get("/authorize", params=params)
        assert response.status_code == 302
        return _query(response.headers["location"])["code"]

    return obtain


@pytest.fixture
def exchange_code(http_client) -> Callable[..., Awaitable[httpx.Response]]:
    """Redeem a code at the token endpoint as ``test-client``."""

    async def exchange(
        code: str,
        code_verifier: str = CODE_VERIFIER,
        redirect_uri: str | None = "https://client.example.com/callback",
    ) -> httpx.Response:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "code_verifier": code_verifier,
            "client_id": "test-client",
            "client_secret": "test-secret",
        }
        if redirect_uri is not None:
            data["redirect_uri"] = redirect_uri
        return await http_client.post("/token", data=data)

    return exchange
