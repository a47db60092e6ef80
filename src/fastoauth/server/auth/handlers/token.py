"""Token endpoint (RFC 6749 section 3.2)."""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response

from fastoauth.errors import (
    InvalidGrantError,
    InvalidRequestError,
    UnauthorizedClientError,
    UnsupportedGrantTypeError,
)
from fastoauth.server.auth.auth import OAuthProvider
from fastoauth.server.auth.client_auth import ClientAuthenticator
from fastoauth.server.auth.models import OAuthClientInformationFull, OAuthToken
from fastoauth.server.auth.pkce import check_code_verifier
from fastoauth.server.auth.responses import NO_STORE_HEADERS, model_response
from fastoauth.server.auth.schemas import (
    AuthorizationCodeGrant,
    RefreshTokenGrant,
    TokenRequest,
    parse_params,
    single_valued,
)
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_GRANT_TYPES = ("authorization_code", "refresh_token")


@dataclass
class TokenHandler:
    provider: OAuthProvider
    client_authenticator: ClientAuthenticator

    async def handle(self, request: Request) -> Response:
        params = single_valued(await request.form())
        client = await self.client_authenticator.authenticate(request, params)

        grant_type = parse_params(TokenRequest, params).grant_type
        if grant_type not in SUPPORTED_GRANT_TYPES:
            raise UnsupportedGrantTypeError(
                f"Unsupported grant type (supported grant types are "
                f"{', '.join(SUPPORTED_GRANT_TYPES)})"
            )
        if grant_type not in client.grant_types:
            raise UnauthorizedClientError(
                f"Client is not allowed to use grant type {grant_type}"
            )

        if grant_type == "authorization_code":
            tokens = await self._authorization_code(client, params)
        else:
            tokens = await self._refresh_token(client, params)

        logger.debug("Issued tokens to client %s via %s", client.client_id, grant_type)
        return model_response(tokens, headers=NO_STORE_HEADERS)

    async def _authorization_code(
        self, client: OAuthClientInformationFull, params: dict[str, str]
    ) -> OAuthToken:
        grant = parse_params(AuthorizationCodeGrant, params)

        if self.provider.skip_local_pkce_validation:
            code_verifier = grant.code_verifier
        else:
            if not grant.code_verifier:
                raise InvalidRequestError("code_verifier is required")
            challenge = await self.provider.challenge_for_authorization_code(
                client, grant.code
            )
            if not challenge:
                raise InvalidGrantError("Unable to retrieve code challenge")
            check_code_verifier(grant.code_verifier, challenge)
            # already checked here, the provider must not need it
            code_verifier = None

        return await self.provider.exchange_authorization_code(
            client,
            grant.code,
            code_verifier=code_verifier,
            redirect_uri=grant.redirect_uri,
            resource=grant.resource,
        )

    async def _refresh_token(
        self, client: OAuthClientInformationFull, params: dict[str, str]
    ) -> OAuthToken:
        grant = parse_params(RefreshTokenGrant, params)

        scopes = grant.scope.split() if grant.scope is not None else None
        if scopes is not None:
            client.validate_scopes(scopes)

        return await self.provider.exchange_refresh_token(
            client, grant.refresh_token, scopes=scopes, resource=grant.resource
        )
