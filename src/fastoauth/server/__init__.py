from .router import OAuthMiddleware, OAuthRouter, create_app

__all__ = ["OAuthMiddleware", "OAuthRouter", "create_app"]
