"""In-memory client store and provider.

Everything lives in process memory and is lost on restart, which makes these
classes suitable for tests, development and single-process deployments.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable, Iterable
from typing import Final

import anyio

from fastoauth.errors import InvalidGrantError, InvalidScopeError, InvalidTokenError
from fastoauth.server.auth.auth import OAuthClientStore, OAuthProvider
from fastoauth.server.auth.models import (
    AccessToken,
    AuthorizationCode,
    AuthorizationParams,
    OAuthClientInformationFull,
    OAuthToken,
    RefreshToken,
    TokenRevocationRequest,
)
from fastoauth.server.auth.pkce import check_code_verifier
from fastoauth.server.auth.redirect_validation import construct_redirect_uri
from fastoauth.utilities.logging import get_logger, redact

logger = get_logger(__name__)

# Default token expiration times
DEFAULT_AUTH_CODE_EXPIRY_SECONDS: Final[int] = 5 * 60  # 5 minutes
DEFAULT_ACCESS_TOKEN_EXPIRY_SECONDS: Final[int] = 60 * 60  # 1 hour


def _new_token() -> str:
    return secrets.token_urlsafe(32)


class InMemoryClientStore(OAuthClientStore):
    supports_registration = True

    def __init__(self, clients: Iterable[OAuthClientInformationFull] | None = None):
        self._clients: dict[str, OAuthClientInformationFull] = {}
        for client in clients or []:
            self._clients[client.client_id] = client
        self._lock = anyio.Lock()

    async def get_client(self, client_id: str) -> OAuthClientInformationFull | None:
        return self._clients.get(client_id)

    async def register_client(
        self, client_info: OAuthClientInformationFull
    ) -> OAuthClientInformationFull:
        async with self._lock:
            if not client_info.client_id:
                client_id = f"client_{secrets.token_hex(8)}"
                while client_id in self._clients:
                    client_id = f"client_{secrets.token_hex(8)}"
                client_info = client_info.model_copy(update={"client_id": client_id})
            elif client_info.client_id in self._clients:
                raise ValueError(f"Client {client_info.client_id} already exists")
            self._clients[client_info.client_id] = client_info
        return client_info

    def add_client(self, client: OAuthClientInformationFull) -> None:
        """Pre-provision a client, replacing any client with the same ID."""
        self._clients[client.client_id] = client

    def remove_client(self, client_id: str) -> bool:
        return self._clients.pop(client_id, None) is not None

    def list_clients(self) -> list[OAuthClientInformationFull]:
        return list(self._clients.values())

    def clear(self) -> None:
        self._clients.clear()


class InMemoryOAuthProvider(OAuthProvider):
    """Issues opaque codes and tokens and keeps them in dictionaries.

    Authorization is granted immediately: ``authorize`` issues a code and
    redirects straight back to the client, so there is no consent step.

    Args:
        client_store: client lookup; an ``InMemoryClientStore`` by default
        access_token_expiry_seconds: lifetime of issued access tokens
        auth_code_expiry_seconds: lifetime of authorization codes
        refresh_token_expiry_seconds: lifetime of refresh tokens; None means
            they only expire through rotation or revocation
        required_scopes: scopes every bearer token must carry
        skip_local_pkce_validation: verify PKCE here instead of in the token
            endpoint
        clock: returns the current time in seconds
        token_factory: generates codes and tokens
    """

    supports_revocation = True

    def __init__(
        self,
        client_store: OAuthClientStore | None = None,
        access_token_expiry_seconds: int = DEFAULT_ACCESS_TOKEN_EXPIRY_SECONDS,
        auth_code_expiry_seconds: int = DEFAULT_AUTH_CODE_EXPIRY_SECONDS,
        refresh_token_expiry_seconds: int | None = None,
        required_scopes: list[str] | None = None,
        skip_local_pkce_validation: bool = False,
        clock: Callable[[], float] = time.time,
        token_factory: Callable[[], str] = _new_token,
    ):
        super().__init__(
            client_store=client_store or InMemoryClientStore(),
            required_scopes=required_scopes,
        )
        self.access_token_expiry_seconds = access_token_expiry_seconds
        self.auth_code_expiry_seconds = auth_code_expiry_seconds
        self.refresh_token_expiry_seconds = refresh_token_expiry_seconds
        self.skip_local_pkce_validation = skip_local_pkce_validation
        self.clock = clock
        self.token_factory = token_factory

        self.auth_codes: dict[str, AuthorizationCode] = {}
        self.access_tokens: dict[str, AccessToken] = {}
        self.refresh_tokens: dict[str, RefreshToken] = {}
        # access token -> refresh token issued with it
        self._access_to_refresh: dict[str, str] = {}
        self._lock = anyio.Lock()

    # -------------------------------------------------------------------------
    # Authorization codes
    # -------------------------------------------------------------------------

    async def authorize(
        self, client: OAuthClientInformationFull, params: AuthorizationParams
    ) -> str:
        code = AuthorizationCode(
            code=self.token_factory(),
            client_id=client.client_id,
            scopes=params.scopes,
            expires_at=self.clock() + self.auth_code_expiry_seconds,
            code_challenge=params.code_challenge,
            redirect_uri=params.redirect_uri,
            redirect_uri_provided_explicitly=params.redirect_uri_provided_explicitly,
            resource=params.resource,
        )
        async with self._lock:
            self.auth_codes[code.code] = code
        logger.debug(
            "Issued authorization code %s for client %s",
            redact(code.code),
            client.client_id,
        )
        return construct_redirect_uri(
            params.redirect_uri, code=code.code, state=params.state
        )

    async def challenge_for_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: str
    ) -> str | None:
        code = self.auth_codes.get(authorization_code)
        if code is None or code.client_id != client.client_id:
            return None
        if code.expires_at < self.clock():
            return None
        return code.code_challenge

    async def exchange_authorization_code(
        self,
        client: OAuthClientInformationFull,
        authorization_code: str,
        code_verifier: str | None = None,
        redirect_uri: str | None = None,
        resource: str | None = None,
    ) -> OAuthToken:
        async with self._lock:
            code = self.auth_codes.get(authorization_code)
            if code is None or code.client_id != client.client_id:
                raise InvalidGrantError("Invalid authorization code")
            # single use: whatever happens next, the code is gone
            del self.auth_codes[authorization_code]

            if code.expires_at < self.clock():
                raise InvalidGrantError("Authorization code has expired")
            if code.redirect_uri_provided_explicitly or redirect_uri is not None:
                if redirect_uri != code.redirect_uri:
                    raise InvalidGrantError(
                        "redirect_uri does not match the one used for authorization"
                    )
            if resource is not None and code.resource is not None:
                if resource != code.resource:
                    raise InvalidGrantError(
                        "resource does not match the one used for authorization"
                    )
            if self.skip_local_pkce_validation:
                if not code_verifier:
                    raise InvalidGrantError("code_verifier is required")
                check_code_verifier(code_verifier, code.code_challenge)

            return self._issue_tokens(
                client.client_id, code.scopes, resource or code.resource
            )

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    async def exchange_refresh_token(
        self,
        client: OAuthClientInformationFull,
        refresh_token: str,
        scopes: list[str] | None = None,
        resource: str | None = None,
    ) -> OAuthToken:
        async with self._lock:
            stored = self.refresh_tokens.get(refresh_token)
            if stored is None or stored.client_id != client.client_id:
                raise InvalidGrantError("Invalid refresh token")
            if stored.expires_at is not None and stored.expires_at < self.clock():
                self._revoke_refresh_token(refresh_token)
                raise InvalidGrantError("Refresh token has expired")

            if scopes is None:
                scopes = stored.scopes
            else:
                not_granted = [s for s in scopes if s not in stored.scopes]
                if not_granted:
                    raise InvalidScopeError(
                        f"Scopes not granted originally: {' '.join(not_granted)}"
                    )

            self._revoke_refresh_token(refresh_token)
            logger.debug("Rotated refresh token for client %s", client.client_id)
            return self._issue_tokens(
                client.client_id, scopes, resource or stored.resource
            )

    async def verify_access_token(self, token: str) -> AccessToken | None:
        access_token = self.access_tokens.get(token)
        if access_token is None:
            return None
        expires_at = access_token.expires_at
        if expires_at is not None and expires_at < self.clock():
            # the refresh token issued alongside stays usable
            async with self._lock:
                self.access_tokens.pop(token, None)
                self._access_to_refresh.pop(token, None)
            raise InvalidTokenError("Token has expired")
        return access_token

    async def revoke_token(
        self, client: OAuthClientInformationFull, request: TokenRevocationRequest
    ) -> None:
        if request.token_type_hint == "refresh_token":
            order = (self.refresh_tokens, self.access_tokens)
        else:
            order = (self.access_tokens, self.refresh_tokens)

        async with self._lock:
            for tokens in order:
                stored = tokens.get(request.token)
                if stored is None:
                    continue
                # tokens of other clients are left alone without telling the caller
                if stored.client_id != client.client_id:
                    logger.debug(
                        "Client %s tried to revoke a token it does not own",
                        client.client_id,
                    )
                    return
                if tokens is self.access_tokens:
                    self._revoke_access_token(request.token)
                else:
                    self._revoke_refresh_token(request.token)
                logger.debug("Revoked token for client %s", client.client_id)
                return

    def _issue_tokens(
        self, client_id: str, scopes: list[str], resource: str | None
    ) -> OAuthToken:
        now = self.clock()
        access_token = AccessToken(
            token=self.token_factory(),
            client_id=client_id,
            scopes=scopes,
            expires_at=int(now + self.access_token_expiry_seconds),
            resource=resource,
        )
        refresh_token = RefreshToken(
            token=self.token_factory(),
            client_id=client_id,
            scopes=scopes,
            access_token=access_token.token,
            expires_at=(
                int(now + self.refresh_token_expiry_seconds)
                if self.refresh_token_expiry_seconds is not None
                else None
            ),
            resource=resource,
        )
        self.access_tokens[access_token.token] = access_token
        self.refresh_tokens[refresh_token.token] = refresh_token
        self._access_to_refresh[access_token.token] = refresh_token.token

        return OAuthToken(
            access_token=access_token.token,
            token_type="Bearer",
            expires_in=self.access_token_expiry_seconds,
            refresh_token=refresh_token.token,
            scope=" ".join(scopes) if scopes else None,
        )

    def _revoke_access_token(self, token: str) -> None:
        self.access_tokens.pop(token, None)
        refresh = self._access_to_refresh.pop(token, None)
        if refresh is not None:
            self.refresh_tokens.pop(refresh, None)

    def _revoke_refresh_token(self, token: str) -> None:
        stored = self.refresh_tokens.pop(token, None)
        if stored is not None and stored.access_token is not None:
            self.access_tokens.pop(stored.access_token, None)
            self._access_to_refresh.pop(stored.access_token, None)
