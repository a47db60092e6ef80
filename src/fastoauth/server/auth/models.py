"""Data model for the authorization server.

Clients, authorization codes, tokens and discovery documents are pydantic
models so they can be validated at the HTTP boundary and serialized straight
into responses.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    AnyHttpUrl,
    AnyUrl,
    BaseModel,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from fastoauth.errors import InvalidScopeError

TokenEndpointAuthMethod = Literal["none", "client_secret_post", "client_secret_basic"]


_any_url = TypeAdapter(AnyUrl)
_http_url = TypeAdapter(AnyHttpUrl)


def validate_url(value: str) -> str:
    """Check that ``value`` is an absolute URL, keeping the original string.

    Redirect URIs are matched by exact string comparison, so the value must not
    be normalized (pydantic's URL types add trailing slashes).
    """
    try:
        _any_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid absolute URL")
    return value


def validate_http_url(value: str) -> str:
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL")
    return value


UrlStr = Annotated[str, AfterValidator(validate_url)]
HttpUrlStr = Annotated[str, AfterValidator(validate_http_url)]


class OAuthClientMetadata(BaseModel):
    """Client metadata submitted to the registration endpoint (RFC 7591)."""

    redirect_uris: list[UrlStr] = Field(..., min_length=1)
    token_endpoint_auth_method: TokenEndpointAuthMethod = "client_secret_post"
    grant_types: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    application_type: str | None = None
    scope: str | None = None
    contacts: list[EmailStr] | None = None
    client_name: str | None = None
    client_uri: HttpUrlStr | None = None
    logo_uri: HttpUrlStr | None = None
    policy_uri: HttpUrlStr | None = None
    tos_uri: HttpUrlStr | None = None
    jwks_uri: HttpUrlStr | None = None
    sector_identifier_uri: HttpUrlStr | None = None
    subject_type: str | None = None
    software_id: str | None = None
    software_version: str | None = None

    @property
    def scopes(self) -> list[str]:
        return self.scope.split() if self.scope else []

    def validate_scopes(self, requested: list[str]) -> list[str]:
        """Reject any requested scope the client was not registered with."""
        allowed = set(self.scopes)
        for scope in requested:
            if scope not in allowed:
                raise InvalidScopeError(f"Client was not registered with scope {scope}")
        return requested


class OAuthClientInformationFull(OAuthClientMetadata):
    """A registered client: metadata plus the credentials issued for it."""

    client_id: str
    client_secret: str | None = None
    client_id_issued_at: int | None = None
    client_secret_expires_at: int | None = None

    def secret_expired(self, now: float) -> bool:
        """A zero or missing expiry means the secret never expires."""
        if not self.client_secret_expires_at:
            return False
        return self.client_secret_expires_at < now


class AuthorizationParams(BaseModel):
    """Finalized parameters of one authorization request."""

    state: str | None = None
    scopes: list[str] = Field(default_factory=list)
    code_challenge: str
    redirect_uri: str
    redirect_uri_provided_explicitly: bool = True
    resource: str | None = None


class AuthorizationCode(BaseModel):
    code: str
    client_id: str
    scopes: list[str]
    expires_at: float
    code_challenge: str
    redirect_uri: str
    redirect_uri_provided_explicitly: bool
    resource: str | None = None


class AccessToken(BaseModel):
    """Information about a verified access token."""

    token: str
    client_id: str
    scopes: list[str]
    expires_at: int | float | None = None
    resource: str | None = None
    extra: dict[str, Any] | None = None


class RefreshToken(BaseModel):
    token: str
    client_id: str
    scopes: list[str]
    access_token: str | None = None
    expires_at: int | None = None
    resource: str | None = None


class OAuthToken(BaseModel):
    """Successful token endpoint response (RFC 6749 section 5.1)."""

    access_token: str
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None

    @field_validator("token_type", mode="before")
    @classmethod
    def normalize_token_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            # Bearer is title-cased in RFC 6750, so we normalize it
            return v.title()
        return v


class TokenRevocationRequest(BaseModel):
    token: str
    token_type_hint: Literal["access_token", "refresh_token"] | None = None


class OAuthMetadata(BaseModel):
    """Authorization server metadata (RFC 8414)."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    registration_endpoint: str | None = None
    revocation_endpoint: str | None = None
    revocation_endpoint_auth_methods_supported: list[str] | None = None
    scopes_supported: list[str] | None = None
    response_types_supported: list[str] = Field(default_factory=lambda: ["code"])
    grant_types_supported: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    token_endpoint_auth_methods_supported: list[str] = Field(
        default_factory=lambda: ["client_secret_post", "client_secret_basic", "none"]
    )
    code_challenge_methods_supported: list[str] = Field(
        default_factory=lambda: ["S256"]
    )
    service_documentation: str | None = None


class ProtectedResourceMetadata(BaseModel):
    """Protected resource metadata (RFC 9728)."""

    resource: str
    authorization_servers: list[str] = Field(..., min_length=1)
    scopes_supported: list[str] | None = None
    bearer_methods_supported: list[str] = Field(default_factory=lambda: ["header"])
    resource_name: str | None = None
    resource_documentation: str | None = None
