"""
Bearer token authentication (RFC 6750) for resources behind the OAuth server.

The authenticator never produces a response for a valid token; it reports
success so the caller can go on serving the protected resource.

Example usage:
authenticator = BearerAuthenticator(
    provider,
    required_scopes=["read"],
    resource_metadata_url="https://api.example.com/.well-known/oauth-protected-resource",
)
result = await authenticator.authenticate(request)
if not result.success:
    return result.error_response
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import JSONResponse

from fastoauth.errors import (
    InsufficientScopeError,
    InvalidTokenError,
    OAuthError,
    ServerError,
)
from fastoauth.server.auth.auth import TokenVerifier
from fastoauth.server.auth.models import AccessToken
from fastoauth.server.auth.responses import error_response
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)


@dataclass
class BearerAuthResult:
    success: bool
    access_token: AccessToken | None = None
    error_response: JSONResponse | None = None


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer`` header value."""
    if not authorization:
        raise InvalidTokenError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenError(
            "Invalid Authorization header format, expected 'Bearer TOKEN'"
        )
    return token.strip()


class BearerAuthenticator:
    def __init__(
        self,
        verifier: TokenVerifier,
        required_scopes: list[str] | None = None,
        resource_metadata_url: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.verifier = verifier
        self.required_scopes = required_scopes or []
        self.resource_metadata_url = resource_metadata_url
        self.clock = clock

    async def authenticate(self, request: Request) -> BearerAuthResult:
        try:
            access_token = await self._verify(request)
        except OAuthError as e:
            logger.debug("Bearer authentication failed: %s", e.message)
            return BearerAuthResult(success=False, error_response=self._error(e))
        except Exception:
            logger.exception("Token verification raised an unexpected error")
            return BearerAuthResult(
                success=False,
                error_response=self._error(ServerError("Internal Server Error")),
            )
        return BearerAuthResult(success=True, access_token=access_token)

    async def _verify(self, request: Request) -> AccessToken:
        token = extract_bearer_token(request.headers.get("authorization"))

        access_token = await self.verifier.verify_access_token(token)
        if access_token is None:
            raise InvalidTokenError("Invalid or unknown token")

        expires_at = access_token.expires_at
        if not isinstance(expires_at, (int, float)) or math.isnan(expires_at):
            raise InvalidTokenError("Token has no expiration time")
        if expires_at < self.clock():
            raise InvalidTokenError("Token has expired")

        missing = [s for s in self.required_scopes if s not in access_token.scopes]
        if missing:
            raise InsufficientScopeError("Insufficient scope")

        return access_token

    def _error(self, error: OAuthError) -> JSONResponse:
        if isinstance(error, (InvalidTokenError, InsufficientScopeError)):
            return error_response(
                error, headers={"WWW-Authenticate": self.www_authenticate(error)}
            )
        if not isinstance(error, ServerError):
            logger.warning(
                "Token verifier raised unexpected %s: %s", error.error_code, error
            )
        return error_response(ServerError("Internal Server Error"))

    def www_authenticate(self, error: OAuthError) -> str:
        description = error.message.replace('"', "'")
        value = f'Bearer error="{error.error_code}", error_description="{description}"'
        if self.resource_metadata_url:
            value += f', resource_metadata="{self.resource_metadata_url}"'
        return value
