"""Request routing for the authorization server.

``OAuthRouter.respond`` is the single entry point: it applies rate limits,
guards bearer-protected paths, dispatches to the endpoint handlers and turns
every protocol error into a response. Requests it does not recognize yield
``None`` so the router can sit in front of any other ASGI application.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import BaseRoute, Route
from starlette.types import ASGIApp, Receive, Scope, Send

import fastoauth
from fastoauth.errors import (
    MethodNotAllowedError,
    OAuthError,
    ServerError,
    TooManyRequestsError,
)
from fastoauth.server.auth.auth import OAuthProvider
from fastoauth.server.auth.bearer import BearerAuthenticator
from fastoauth.server.auth.client_auth import ClientAuthenticator
from fastoauth.server.auth.handlers.authorize import AuthorizationHandler
from fastoauth.server.auth.handlers.metadata import (
    AUTHORIZATION_SERVER_METADATA_PATH,
    AUTHORIZE_PATH,
    PROTECTED_RESOURCE_METADATA_PATH,
    REGISTER_PATH,
    REVOKE_PATH,
    TOKEN_PATH,
    MetadataHandler,
    build_metadata,
    build_resource_metadata,
)
from fastoauth.server.auth.handlers.register import RegistrationHandler
from fastoauth.server.auth.handlers.revoke import RevocationHandler
from fastoauth.server.auth.handlers.token import TokenHandler
from fastoauth.server.auth.responses import error_response
from fastoauth.server.auth.settings import AuthSettings
from fastoauth.server.cors import CorsPolicy
from fastoauth.server.middleware.rate_limiting import RateLimiter
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class OAuthRouter:
    """Dispatches requests to the OAuth endpoints.

    Args:
        provider: backend that issues and redeems codes and tokens
        settings: server configuration

    Raises:
        ValueError: if registration is enabled but the provider's client
            store cannot register clients.
    """

    def __init__(self, provider: OAuthProvider, settings: AuthSettings):
        self.provider = provider
        self.settings = settings

        registration_enabled = settings.client_registration_options.enabled
        if registration_enabled and not provider.client_store.supports_registration:
            raise ValueError(
                "Client registration is enabled but the client store does not "
                "support registering clients"
            )
        revocation_enabled = settings.revocation_options.enabled
        if revocation_enabled and not provider.supports_revocation:
            raise ValueError(
                "Token revocation is enabled but the provider does not support it"
            )

        client_authenticator = ClientAuthenticator(
            provider.client_store, clock=settings.clock
        )
        authorize = AuthorizationHandler(provider)
        metadata = MetadataHandler(
            build_metadata(settings, registration_enabled, revocation_enabled)
        )
        resource_metadata = MetadataHandler(build_resource_metadata(settings))

        self.routes: dict[str, dict[str, Handler]] = {
            AUTHORIZE_PATH: {"GET": authorize.handle, "POST": authorize.handle},
            TOKEN_PATH: {
                "POST": TokenHandler(provider, client_authenticator).handle
            },
            AUTHORIZATION_SERVER_METADATA_PATH: {"GET": metadata.handle},
            PROTECTED_RESOURCE_METADATA_PATH: {"GET": resource_metadata.handle},
        }
        if registration_enabled:
            self.routes[REGISTER_PATH] = {
                "POST": RegistrationHandler(provider.client_store, settings).handle
            }
        if revocation_enabled:
            self.routes[REVOKE_PATH] = {
                "POST": RevocationHandler(provider, client_authenticator).handle
            }

        self.rate_limiter = RateLimiter(
            settings.rate_limits,
            clock=settings.clock,
            get_client_id=settings.rate_limit_identifier,
        )

        self.bearer_authenticator: BearerAuthenticator | None = None
        if settings.bearer is not None:
            self.bearer_authenticator = BearerAuthenticator(
                provider,
                required_scopes=settings.bearer.required_scopes,
                resource_metadata_url=settings.bearer.resource_metadata_url,
                clock=settings.clock,
            )

        self.cors = CorsPolicy(settings.cors) if settings.cors else None

    async def respond(self, request: Request) -> Response | None:
        """Answer ``request`` or return None when it is not ours to handle."""
        if self.cors is not None and request.method == "OPTIONS":
            return self.cors.preflight(request)

        response = await self._respond(request)
        if response is not None and self.cors is not None:
            self.cors.apply(request, response)
        return response

    async def _respond(self, request: Request) -> Response | None:
        path = request.url.path
        method = request.method.upper()

        try:
            await self.rate_limiter.check(path, request)
        except TooManyRequestsError as e:
            return error_response(e)

        if self.bearer_authenticator is not None and self.settings.bearer is not None:
            if self.settings.bearer.protects(path, method):
                result = await self.bearer_authenticator.authenticate(request)
                if not result.success:
                    return result.error_response
                request.state.access_token = result.access_token
                return None

        handlers = self.routes.get(path)
        if handlers is None:
            return None
        handler = handlers.get(method)
        if handler is None:
            allowed = ", ".join(handlers)
            return error_response(
                MethodNotAllowedError(f"Method {method} not allowed"),
                headers={"Allow": allowed},
            )

        try:
            return await handler(request)
        except OAuthError as e:
            logger.debug("%s %s failed: %s", method, path, e.error_code)
            return error_response(e)
        except Exception as e:
            logger.exception("Unhandled error in %s %s", method, path)
            if fastoauth.settings.mask_error_details:
                return error_response(ServerError("Internal Server Error"))
            return error_response(ServerError(f"Internal Server Error: {e}"))

    def get_routes(self) -> list[Route]:
        """Starlette routes for every endpoint the router serves."""
        return [
            Route(path, endpoint=self._endpoint, methods=HTTP_METHODS)
            for path in self.routes
        ]

    async def _endpoint(self, request: Request) -> Response:
        response = await self.respond(request)
        if response is None:
            return JSONResponse({"error": "not_found"}, status_code=404)
        return response

    def http_app(self, routes: list[BaseRoute] | None = None) -> Starlette:
        """Build an ASGI app serving the OAuth endpoints.

        Any extra ``routes`` are served behind the router, so bearer-protected
        paths among them are only reached with a valid token.
        """
        return Starlette(
            routes=routes or [],
            middleware=[Middleware(OAuthMiddleware, router=self)],
        )


class OAuthMiddleware:
    """ASGI middleware forwarding requests the router does not handle."""

    def __init__(self, app: ASGIApp, router: OAuthRouter):
        self.app = app
        self.router = router

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        response = await self.router.respond(request)
        if response is None:
            await self.app(scope, receive, send)
            return
        await response(scope, receive, send)


def create_app(
    provider: OAuthProvider,
    settings: AuthSettings,
    routes: list[BaseRoute] | None = None,
) -> Starlette:
    """Create a standalone authorization server application."""
    return OAuthRouter(provider, settings).http_app(routes=routes)
