"""Discovery documents (RFC 8414 and RFC 9728)."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from fastoauth.server.auth.models import OAuthMetadata, ProtectedResourceMetadata
from fastoauth.server.auth.responses import model_response
from fastoauth.server.auth.settings import AuthSettings

AUTHORIZE_PATH = "/authorize"
TOKEN_PATH = "/token"
REGISTER_PATH = "/register"
REVOKE_PATH = "/revoke"
AUTHORIZATION_SERVER_METADATA_PATH = "/.well-known/oauth-authorization-server"
PROTECTED_RESOURCE_METADATA_PATH = "/.well-known/oauth-protected-resource"


def build_metadata(
    settings: AuthSettings,
    registration_enabled: bool,
    revocation_enabled: bool,
) -> OAuthMetadata:
    """Build the authorization server metadata document."""
    metadata = OAuthMetadata(
        issuer=settings.issuer,
        authorization_endpoint=settings.endpoint_url(AUTHORIZE_PATH),
        token_endpoint=settings.endpoint_url(TOKEN_PATH),
        scopes_supported=settings.scopes_supported,
        service_documentation=(
            str(settings.service_documentation_url)
            if settings.service_documentation_url
            else None
        ),
    )
    if registration_enabled:
        metadata.registration_endpoint = settings.endpoint_url(REGISTER_PATH)
    if revocation_enabled:
        metadata.revocation_endpoint = settings.endpoint_url(REVOKE_PATH)
        metadata.revocation_endpoint_auth_methods_supported = [
            "client_secret_post",
            "client_secret_basic",
        ]
    return metadata


def build_resource_metadata(settings: AuthSettings) -> ProtectedResourceMetadata:
    return ProtectedResourceMetadata(
        resource=settings.resource,
        authorization_servers=[settings.issuer],
        scopes_supported=settings.scopes_supported,
        resource_name=settings.resource_name,
    )


@dataclass
class MetadataHandler:
    """Serves a document that is fixed once the router is built."""

    metadata: BaseModel

    async def handle(self, request: Request) -> Response:
        return model_response(
            self.metadata, headers={"Cache-Control": "public, max-age=3600"}
        )
