"""Structural validation of endpoint inputs.

Query strings, form bodies and JSON bodies are validated with pydantic
models; failures are translated into the OAuth error the endpoint reports.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.datastructures import ImmutableMultiDict

from fastoauth.errors import InvalidRequestError, OAuthError
from fastoauth.server.auth.models import UrlStr

ModelT = TypeVar("ModelT", bound=BaseModel)


class _RequestSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ClientAuthorizationParams(_RequestSchema):
    """Parameters checked before a redirect target is trusted."""

    client_id: str = Field(..., min_length=1)
    redirect_uri: UrlStr | None = None


class RequestAuthorizationParams(_RequestSchema):
    """Parameters checked after the redirect target has been resolved."""

    response_type: Literal["code"]
    code_challenge: str = Field(..., min_length=1)
    code_challenge_method: Literal["S256"] = "S256"
    scope: str | None = None
    state: str | None = None
    resource: UrlStr | None = None


class ClientAuthenticatedRequest(_RequestSchema):
    client_id: str = Field(..., min_length=1)
    client_secret: str | None = None


class TokenRequest(_RequestSchema):
    grant_type: str = Field(..., min_length=1)


class AuthorizationCodeGrant(_RequestSchema):
    code: str = Field(..., min_length=1)
    code_verifier: str | None = None
    redirect_uri: UrlStr | None = None
    resource: UrlStr | None = None


class RefreshTokenGrant(_RequestSchema):
    refresh_token: str = Field(..., min_length=1)
    scope: str | None = None
    resource: UrlStr | None = None


class RevocationParams(_RequestSchema):
    token: str = Field(..., min_length=1)
    # unknown hints must be ignored (RFC 7009 section 2.1)
    token_type_hint: str | None = None


def format_validation_error(exc: ValidationError) -> str:
    """Render pydantic errors as ``field: message`` pairs."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return ", ".join(parts)


def parse_params(
    model: type[ModelT],
    params: Mapping[str, Any],
    error_class: type[OAuthError] = InvalidRequestError,
) -> ModelT:
    """Validate ``params`` against ``model`` or raise ``error_class``."""
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise error_class(format_validation_error(e)) from e


def single_valued(params: ImmutableMultiDict[str, Any]) -> dict[str, str]:
    """Flatten query or form parameters, rejecting repeated keys.

    OAuth request parameters must not be included more than once
    (RFC 6749 section 3.1).
    """
    result: dict[str, str] = {}
    for key in params.keys():
        values = params.getlist(key)
        if len(values) > 1:
            raise InvalidRequestError(f"Parameter {key} is repeated")
        value = values[0]
        # file uploads have no meaning for OAuth endpoints
        if not isinstance(value, str):
            raise InvalidRequestError(f"Parameter {key} must be a string")
        result[key] = value
    return result
