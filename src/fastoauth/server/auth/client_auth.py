"""Client authentication for the token and revocation endpoints.

Credentials come from the form body (``client_secret_post``) or, when the
body carries no ``client_id``, from HTTP Basic (``client_secret_basic``).
"""

from __future__ import annotations

import base64
import binascii
import secrets
from collections.abc import Callable
from urllib.parse import unquote_plus

from starlette.requests import Request

from fastoauth.errors import InvalidClientError, InvalidRequestError
from fastoauth.server.auth.auth import OAuthClientStore
from fastoauth.server.auth.models import OAuthClientInformationFull
from fastoauth.server.auth.schemas import ClientAuthenticatedRequest, parse_params
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)


def parse_basic_credentials(authorization: str) -> tuple[str, str | None] | None:
    """Decode an ``Authorization: Basic`` header into client credentials.

    Returns None when the header uses another scheme.
    """
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "basic" or not credentials.strip():
        return None
    try:
        decoded = base64.b64decode(credentials.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise InvalidRequestError("Malformed Basic authorization header")
    client_id, sep, client_secret = decoded.partition(":")
    # RFC 6749 section 2.3.1: both parts are form-urlencoded before encoding
    return unquote_plus(client_id), unquote_plus(client_secret) if sep else None


class ClientAuthenticator:
    def __init__(self, client_store: OAuthClientStore, clock: Callable[[], float]):
        self.client_store = client_store
        self.clock = clock

    async def authenticate(
        self, request: Request, params: dict[str, str]
    ) -> OAuthClientInformationFull:
        """Authenticate the calling client.

        Raises:
            InvalidRequestError: if no client credentials were supplied.
            InvalidClientError: if the client is unknown, or its secret is
                missing, wrong or expired.
        """
        credentials = dict(params)
        if not credentials.get("client_id"):
            authorization = request.headers.get("authorization")
            basic = parse_basic_credentials(authorization) if authorization else None
            if basic is not None:
                credentials["client_id"], secret = basic
                if secret:
                    credentials["client_secret"] = secret

        client_auth = parse_params(ClientAuthenticatedRequest, credentials)

        client = await self.client_store.get_client(client_auth.client_id)
        if client is None:
            logger.debug("Unknown client_id: %s", client_auth.client_id)
            raise InvalidClientError("Invalid client_id")

        if client.client_secret:
            if not client_auth.client_secret:
                raise InvalidClientError("Client secret is required")
            if not secrets.compare_digest(
                client.client_secret.encode(), client_auth.client_secret.encode()
            ):
                logger.debug("Client secret mismatch for %s", client.client_id)
                raise InvalidClientError("Invalid client_secret")
            if client.secret_expired(self.clock()):
                raise InvalidClientError("Client secret has expired")

        return client
