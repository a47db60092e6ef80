from .auth import OAuthClientStore, OAuthProvider, TokenVerifier
from .bearer import BearerAuthenticator
from .settings import (
    AuthSettings,
    BearerOptions,
    ClientRegistrationOptions,
    CorsOptions,
    RateLimitConfig,
    RevocationOptions,
)


__all__ = [
    "AuthSettings",
    "BearerAuthenticator",
    "BearerOptions",
    "ClientRegistrationOptions",
    "CorsOptions",
    "OAuthClientStore",
    "OAuthProvider",
    "RateLimitConfig",
    "RevocationOptions",
    "TokenVerifier",
]
