"""FastOAuth - An OAuth 2.1 authorization server core."""

from importlib.metadata import version
from fastoauth.settings import Settings

settings = Settings()

from fastoauth.server.auth.auth import OAuthClientStore, OAuthProvider, TokenVerifier
from fastoauth.server.auth.settings import AuthSettings
from fastoauth.server.router import OAuthMiddleware, OAuthRouter, create_app

__version__ = version("fastoauth")
__all__ = [
    "AuthSettings",
    "OAuthClientStore",
    "OAuthMiddleware",
    "OAuthProvider",
    "OAuthRouter",
    "TokenVerifier",
    "create_app",
    "settings",
]
