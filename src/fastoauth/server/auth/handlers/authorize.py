"""Authorization endpoint (RFC 6749 section 4.1.1).

Validation runs in two phases. Until the client and its redirect URI are
known, errors can only be reported directly to the user agent. Once a
trusted redirect target exists, every error is sent back to the client
through it.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from fastoauth.errors import (
    InvalidClientError,
    OAuthError,
    ServerError,
    UnsupportedResponseTypeError,
)
from fastoauth.server.auth.auth import OAuthProvider
from fastoauth.server.auth.models import AuthorizationParams, OAuthClientInformationFull
from fastoauth.server.auth.redirect_validation import (
    construct_redirect_uri,
    resolve_redirect_uri,
)
from fastoauth.server.auth.responses import error_response
from fastoauth.server.auth.schemas import (
    ClientAuthorizationParams,
    RequestAuthorizationParams,
    parse_params,
    single_valued,
)
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AuthorizationHandler:
    provider: OAuthProvider

    async def handle(self, request: Request) -> Response:
        # Phase 1: no trusted redirect target yet, errors are direct responses
        try:
            params = await self._read_params(request)
            client_params = parse_params(ClientAuthorizationParams, params)
            client = await self.provider.client_store.get_client(
                client_params.client_id
            )
            if client is None:
                logger.debug(
                    "Authorization for unknown client %s", client_params.client_id
                )
                raise InvalidClientError("Invalid client_id")
            redirect_uri, explicit = resolve_redirect_uri(
                client, client_params.redirect_uri
            )
        except OAuthError as e:
            # no client authentication happens here, so never a 401
            return error_response(e, status_code=400)

        # Phase 2: report everything through the redirect URI
        state = params.get("state")
        try:
            auth_params = self._validate(client, params, redirect_uri, explicit)
            result = await self.provider.authorize(client, auth_params)
        except OAuthError as e:
            logger.debug(
                "Authorization for client %s failed: %s", client.client_id, e.error_code
            )
            return self._redirect_error(redirect_uri, e, state)
        except Exception:
            logger.exception("Provider failed to authorize client %s", client.client_id)
            return self._redirect_error(
                redirect_uri, ServerError("Internal Server Error"), state
            )

        if isinstance(result, Response):
            return result
        return RedirectResponse(
            url=result, status_code=302, headers={"Cache-Control": "no-store"}
        )

    async def _read_params(self, request: Request) -> dict[str, str]:
        if request.method == "GET":
            return single_valued(request.query_params)
        return single_valued(await request.form())

    def _validate(
        self,
        client: OAuthClientInformationFull,
        params: dict[str, str],
        redirect_uri: str,
        explicit: bool,
    ) -> AuthorizationParams:
        response_type = params.get("response_type")
        if response_type is not None and response_type != "code":
            raise UnsupportedResponseTypeError(
                f"response_type {response_type!r} is not supported"
            )
        request_params = parse_params(RequestAuthorizationParams, params)

        scopes = request_params.scope.split() if request_params.scope else []
        client.validate_scopes(scopes)

        return AuthorizationParams(
            state=request_params.state,
            scopes=scopes,
            code_challenge=request_params.code_challenge,
            redirect_uri=redirect_uri,
            redirect_uri_provided_explicitly=explicit,
            resource=request_params.resource,
        )

    def _redirect_error(
        self, redirect_uri: str, error: OAuthError, state: str | None
    ) -> RedirectResponse:
        location = construct_redirect_uri(
            redirect_uri,
            error=error.error_code,
            error_description=error.message or None,
            error_uri=error.error_uri,
            state=state,
        )
        return RedirectResponse(
            url=location, status_code=302, headers={"Cache-Control": "no-store"}
        )
