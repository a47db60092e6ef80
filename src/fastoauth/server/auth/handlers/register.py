"""Dynamic client registration endpoint (RFC 7591)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

from fastoauth.errors import InvalidClientMetadataError
from fastoauth.server.auth.auth import OAuthClientStore
from fastoauth.server.auth.models import (
    OAuthClientInformationFull,
    OAuthClientMetadata,
)
from fastoauth.server.auth.responses import NO_STORE_HEADERS, model_response
from fastoauth.server.auth.schemas import parse_params
from fastoauth.server.auth.settings import AuthSettings
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_GRANT_TYPES = {"authorization_code", "refresh_token"}
SUPPORTED_RESPONSE_TYPES = {"code"}


@dataclass
class RegistrationHandler:
    client_store: OAuthClientStore
    settings: AuthSettings

    async def handle(self, request: Request) -> Response:
        body = await self._read_json(request)
        metadata = parse_params(
            OAuthClientMetadata, body, error_class=InvalidClientMetadataError
        )
        metadata = self._apply_policy(metadata)

        options = self.settings.client_registration_options
        now = int(self.settings.clock())

        client_secret = None
        client_secret_expires_at = None
        if metadata.token_endpoint_auth_method != "none":
            client_secret = self.settings.secret_factory()
            ttl = options.client_secret_expiry_seconds
            client_secret_expires_at = now + ttl if ttl > 0 else 0

        client_info = OAuthClientInformationFull(
            **metadata.model_dump(),
            # an empty id asks the store to assign one
            client_id=self.settings.client_id_factory()
            if options.generate_client_id
            else "",
            client_id_issued_at=now,
            client_secret=client_secret,
            client_secret_expires_at=client_secret_expires_at,
        )
        registered = await self.client_store.register_client(client_info)
        logger.info("Registered OAuth client %s", registered.client_id)

        return model_response(registered, status_code=201, headers=NO_STORE_HEADERS)

    async def _read_json(self, request: Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidClientMetadataError("Request body must be valid JSON")
        if not isinstance(body, dict):
            raise InvalidClientMetadataError("Request body must be a JSON object")
        return body

    def _apply_policy(self, metadata: OAuthClientMetadata) -> OAuthClientMetadata:
        options = self.settings.client_registration_options

        if metadata.scope is None and options.default_scopes:
            metadata = metadata.model_copy(
                update={"scope": " ".join(options.default_scopes)}
            )
        if options.valid_scopes is not None:
            invalid = set(metadata.scopes) - set(options.valid_scopes)
            if invalid:
                raise InvalidClientMetadataError(
                    f"Requested scopes are not valid: {', '.join(sorted(invalid))}"
                )

        if "authorization_code" not in metadata.grant_types:
            raise InvalidClientMetadataError(
                "grant_types must include authorization_code"
            )
        unsupported = set(metadata.grant_types) - SUPPORTED_GRANT_TYPES
        if unsupported:
            raise InvalidClientMetadataError(
                f"Unsupported grant_types: {', '.join(sorted(unsupported))}"
            )
        if not set(metadata.response_types) <= SUPPORTED_RESPONSE_TYPES:
            raise InvalidClientMetadataError("response_types must be ['code']")

        return metadata
