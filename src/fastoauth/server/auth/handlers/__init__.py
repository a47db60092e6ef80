from .authorize import AuthorizationHandler
from .metadata import MetadataHandler
from .register import RegistrationHandler
from .revoke import RevocationHandler
from .token import TokenHandler

__all__ = [
    "AuthorizationHandler",
    "MetadataHandler",
    "RegistrationHandler",
    "RevocationHandler",
    "TokenHandler",
]
