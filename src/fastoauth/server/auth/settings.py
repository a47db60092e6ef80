"""Configuration for the OAuth authorization server.

``AuthSettings`` is immutable once built; the router and every handler read
it by reference. The clock and random sources are part of the settings so
tests can make time and generated identifiers deterministic.
"""

from __future__ import annotations

import secrets
import time
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.requests import Request

# Default client secret lifetime for dynamically registered clients
DEFAULT_CLIENT_SECRET_EXPIRY_SECONDS = 30 * 24 * 60 * 60  # 30 days

LOCALHOST_NAMES = ("localhost", "127.0.0.1")


def _new_client_id() -> str:
    return str(uuid.uuid4())


def _new_secret() -> str:
    return secrets.token_hex(32)


class ClientRegistrationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    client_secret_expiry_seconds: int = DEFAULT_CLIENT_SECRET_EXPIRY_SECONDS
    generate_client_id: bool = True
    valid_scopes: list[str] | None = None
    default_scopes: list[str] | None = None


class RevocationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False


class RateLimitConfig(BaseModel):
    """Fixed window limit for one endpoint."""

    model_config = ConfigDict(frozen=True)

    window_seconds: float = Field(..., gt=0)
    max_requests: int = Field(..., ge=0)


class BearerOptions(BaseModel):
    """Paths the router protects with bearer token authentication.

    A successful check makes the router report the request as not handled so
    the application behind it can serve the protected resource.
    """

    model_config = ConfigDict(frozen=True)

    paths: list[str]
    # None protects every method on the listed paths
    methods: list[str] | None = None
    required_scopes: list[str] = Field(default_factory=list)
    resource_metadata_url: str | None = None

    @field_validator("methods")
    @classmethod
    def normalize_methods(cls, methods: list[str] | None) -> list[str] | None:
        if methods is None:
            return None
        return [method.upper() for method in methods]

    def protects(self, path: str, method: str) -> bool:
        if path not in self.paths:
            return False
        return self.methods is None or method.upper() in self.methods


class CorsOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: str | list[str] = "*"
    methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allowed_headers: list[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization"]
    )
    exposed_headers: list[str] | None = None
    credentials: bool = False
    max_age: int | None = None


class AuthSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    issuer_url: AnyHttpUrl = Field(
        ...,
        description="URL advertised as OAuth issuer; this should be the URL the server is reachable at",
    )
    base_url: AnyHttpUrl | None = Field(
        None, description="Base URL of the endpoints when it differs from the issuer"
    )
    service_documentation_url: AnyHttpUrl | None = None
    resource_server_url: AnyHttpUrl | None = None
    resource_name: str | None = None
    scopes_supported: list[str] | None = None
    client_registration_options: ClientRegistrationOptions = Field(
        default_factory=ClientRegistrationOptions
    )
    revocation_options: RevocationOptions = Field(default_factory=RevocationOptions)
    rate_limits: dict[str, RateLimitConfig] = Field(default_factory=dict)
    bearer: BearerOptions | None = None
    cors: CorsOptions | None = None

    rate_limit_identifier: Callable[[Request], str] | None = Field(
        default=None, exclude=True
    )
    clock: Callable[[], float] = Field(default=time.time, exclude=True)
    client_id_factory: Callable[[], str] = Field(default=_new_client_id, exclude=True)
    secret_factory: Callable[[], str] = Field(default=_new_secret, exclude=True)

    @field_validator("issuer_url")
    @classmethod
    def validate_issuer_url(cls, url: AnyHttpUrl) -> AnyHttpUrl:
        """Validate the issuer as required by RFC 8414 section 2."""
        if url.scheme != "https" and url.host not in LOCALHOST_NAMES:
            raise ValueError("Issuer URL must be HTTPS except for localhost")
        if url.fragment:
            raise ValueError("Issuer URL must not have a fragment")
        if url.query:
            raise ValueError("Issuer URL must not have a query string")
        return url

    @property
    def issuer(self) -> str:
        return str(self.issuer_url)

    @property
    def resource(self) -> str:
        return str(self.resource_server_url or self.issuer_url)

    def endpoint_url(self, path: str) -> str:
        base = str(self.base_url or self.issuer_url).rstrip("/")
        return f"{base}{path}"

    @classmethod
    def from_env(cls, **overrides: Any) -> AuthSettings:
        """Build settings from ``FASTOAUTH_AUTH_*`` variables.

        Keyword arguments take precedence over the environment.
        """
        env = EnvAuthSettings()
        values: dict[str, Any] = {
            k: v
            for k, v in env.model_dump(
                exclude={
                    "registration_enabled",
                    "client_secret_expiry_seconds",
                    "revocation_enabled",
                }
            ).items()
            if v is not None
        }
        registration: dict[str, Any] = {"enabled": env.registration_enabled}
        if env.client_secret_expiry_seconds is not None:
            registration["client_secret_expiry_seconds"] = (
                env.client_secret_expiry_seconds
            )
        values["client_registration_options"] = ClientRegistrationOptions(
            **registration
        )
        values["revocation_options"] = RevocationOptions(
            enabled=env.revocation_enabled
        )
        values.update(overrides)
        return cls(**values)


class EnvAuthSettings(BaseSettings):
    """Authorization server settings read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="FASTOAUTH_AUTH_",
        env_file=".env",
        extra="ignore",
    )

    issuer_url: str | None = None
    base_url: str | None = None
    service_documentation_url: str | None = None
    resource_server_url: str | None = None
    resource_name: str | None = None
    scopes_supported: list[str] | None = None
    registration_enabled: bool = False
    client_secret_expiry_seconds: int | None = None
    revocation_enabled: bool = False
