"""Token revocation endpoint (RFC 7009).

The response never reveals whether the token existed or belonged to the
caller; only client authentication failures are reported.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from fastoauth.errors import OAuthError
from fastoauth.server.auth.auth import OAuthProvider
from fastoauth.server.auth.client_auth import ClientAuthenticator
from fastoauth.server.auth.models import TokenRevocationRequest
from fastoauth.server.auth.schemas import RevocationParams, parse_params, single_valued
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)

TOKEN_TYPE_HINTS = ("access_token", "refresh_token")


@dataclass
class RevocationHandler:
    provider: OAuthProvider
    client_authenticator: ClientAuthenticator

    async def handle(self, request: Request) -> Response:
        params = single_valued(await request.form())
        client = await self.client_authenticator.authenticate(request, params)
        revocation = parse_params(RevocationParams, params)

        hint = revocation.token_type_hint
        revoke_request = TokenRevocationRequest(
            token=revocation.token,
            token_type_hint=hint if hint in TOKEN_TYPE_HINTS else None,
        )
        try:
            await self.provider.revoke_token(client, revoke_request)
        except OAuthError as e:
            logger.debug(
                "Revocation for client %s not applied: %s", client.client_id, e
            )

        return JSONResponse({}, status_code=200)
