"""OAuth 2.1 protocol errors.

Every error carries the machine-readable ``error`` code defined by RFC 6749,
RFC 6750, RFC 7591 and RFC 7009, a human readable description and the HTTP
status code it maps to when rendered as a direct response.
"""

from __future__ import annotations

from typing import Any, ClassVar


class OAuthError(Exception):
    """Base class for all OAuth protocol errors."""

    error_code: ClassVar[str] = "server_error"
    status_code: ClassVar[int] = 400

    def __init__(self, message: str = "", error_uri: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_uri = error_uri

    def to_response_object(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error_code}
        if self.message:
            body["error_description"] = self.message
        if self.error_uri:
            body["error_uri"] = self.error_uri
        return body

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InvalidRequestError(OAuthError):
    error_code = "invalid_request"


class InvalidClientError(OAuthError):
    """Client authentication failed (unknown client, bad or expired secret)."""

    error_code = "invalid_client"
    status_code = 401


class InvalidGrantError(OAuthError):
    """The authorization code or refresh token is invalid, expired or reused."""

    error_code = "invalid_grant"


class UnauthorizedClientError(OAuthError):
    error_code = "unauthorized_client"


class UnsupportedGrantTypeError(OAuthError):
    error_code = "unsupported_grant_type"


class UnsupportedResponseTypeError(OAuthError):
    error_code = "unsupported_response_type"


class InvalidScopeError(OAuthError):
    error_code = "invalid_scope"


class AccessDeniedError(OAuthError):
    error_code = "access_denied"


class InvalidTokenError(OAuthError):
    error_code = "invalid_token"
    status_code = 401


class InsufficientScopeError(OAuthError):
    error_code = "insufficient_scope"
    status_code = 403


class InvalidClientMetadataError(OAuthError):
    error_code = "invalid_client_metadata"


class MethodNotAllowedError(OAuthError):
    error_code = "method_not_allowed"
    status_code = 405


class TooManyRequestsError(OAuthError):
    error_code = "too_many_requests"
    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        error_uri: str | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(message, error_uri)
        self.retry_after = retry_after


class ServerError(OAuthError):
    error_code = "server_error"
    status_code = 500


__all__ = [
    "OAuthError",
    "InvalidRequestError",
    "InvalidClientError",
    "InvalidGrantError",
    "UnauthorizedClientError",
    "UnsupportedGrantTypeError",
    "UnsupportedResponseTypeError",
    "InvalidScopeError",
    "AccessDeniedError",
    "InvalidTokenError",
    "InsufficientScopeError",
    "InvalidClientMetadataError",
    "MethodNotAllowedError",
    "TooManyRequestsError",
    "ServerError",
]
