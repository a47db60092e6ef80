"""Redirect URI resolution for authorization requests."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastoauth.errors import InvalidRequestError
from fastoauth.server.auth.models import OAuthClientInformationFull


def resolve_redirect_uri(
    client: OAuthClientInformationFull, redirect_uri: str | None
) -> tuple[str, bool]:
    """Pick the redirect URI for an authorization request.

    An explicit URI must exactly match one of the client's registered URIs.
    Without one, the client must have exactly one registered URI.

    Returns:
        The resolved URI and whether it was provided explicitly.

    Raises:
        InvalidRequestError: if no unambiguous, registered URI can be chosen.
    """
    if redirect_uri is not None:
        if redirect_uri not in client.redirect_uris:
            raise InvalidRequestError("Unregistered redirect_uri")
        return redirect_uri, True
    if len(client.redirect_uris) == 1:
        return client.redirect_uris[0], False
    raise InvalidRequestError(
        "redirect_uri must be specified when client has multiple registered URIs"
    )


def construct_redirect_uri(redirect_uri_base: str, **params: str | None) -> str:
    """Add query parameters to a redirect URI, keeping any it already has."""
    parts = urlsplit(redirect_uri_base)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v is not None)
    return urlunsplit(parts._replace(query=urlencode(query)))
