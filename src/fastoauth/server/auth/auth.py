"""Interfaces between the protocol handlers and the pluggable backends.

The router never touches persistence directly. Client records live behind an
``OAuthClientStore``; codes and tokens are owned by an ``OAuthProvider``.
Backends must make code and refresh token redemption atomic per key so that
two concurrent redemptions produce exactly one success.
"""

from __future__ import annotations

from starlette.responses import Response

from fastoauth.server.auth.models import (
    AccessToken,
    AuthorizationParams,
    OAuthClientInformationFull,
    OAuthToken,
    TokenRevocationRequest,
)


class OAuthClientStore:
    """Lookup and optional registration of OAuth clients."""

    supports_registration: bool = False

    async def get_client(self, client_id: str) -> OAuthClientInformationFull | None:
        raise NotImplementedError

    async def register_client(
        self, client_info: OAuthClientInformationFull
    ) -> OAuthClientInformationFull:
        """Persist a new client and return the stored record.

        ``client_info.client_id`` is empty when the server was configured not
        to generate client IDs; the store must assign one in that case.
        """
        raise NotImplementedError("Client registration not supported")


class TokenVerifier:
    """Base class for anything that can verify bearer tokens."""

    def __init__(self, required_scopes: list[str] | None = None):
        self.required_scopes = required_scopes or []

    async def verify_access_token(self, token: str) -> AccessToken | None:
        """Verify a bearer token.

        Returns the token information, or None when the token is unknown.
        Implementations may instead raise ``InvalidTokenError`` or
        ``InsufficientScopeError`` to report a precise reason.
        """
        raise NotImplementedError


class OAuthProvider(TokenVerifier):
    """Issues and redeems authorization codes and tokens."""

    supports_revocation: bool = False

    # When True, the router does not compare the code verifier with the
    # stored challenge and forwards the verifier to the provider instead.
    skip_local_pkce_validation: bool = False

    def __init__(
        self,
        client_store: OAuthClientStore,
        required_scopes: list[str] | None = None,
    ):
        super().__init__(required_scopes=required_scopes)
        self.client_store = client_store

    async def authorize(
        self, client: OAuthClientInformationFull, params: AuthorizationParams
    ) -> str | Response:
        """Begin authorization for a validated request.

        Returns the URL the user agent is redirected to, or a complete
        response (for example a consent page). Raising an ``OAuthError``
        reports it to the client through its redirect URI.
        """
        raise NotImplementedError

    async def challenge_for_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: str
    ) -> str | None:
        """Return the PKCE challenge recorded when the code was issued."""
        raise NotImplementedError

    async def exchange_authorization_code(
        self,
        client: OAuthClientInformationFull,
        authorization_code: str,
        code_verifier: str | None = None,
        redirect_uri: str | None = None,
        resource: str | None = None,
    ) -> OAuthToken:
        """Redeem a code. The code must be invalidated before returning."""
        raise NotImplementedError

    async def exchange_refresh_token(
        self,
        client: OAuthClientInformationFull,
        refresh_token: str,
        scopes: list[str] | None = None,
        resource: str | None = None,
    ) -> OAuthToken:
        """Rotate a refresh token.

        Must invalidate the previous access token and refresh token and
        reject scopes that were not part of the original grant.
        """
        raise NotImplementedError

    async def revoke_token(
        self, client: OAuthClientInformationFull, request: TokenRevocationRequest
    ) -> None:
        """Revoke an access or refresh token owned by ``client``.

        Unknown tokens and tokens of other clients are ignored.
        """
        raise NotImplementedError("Token revocation not supported")
