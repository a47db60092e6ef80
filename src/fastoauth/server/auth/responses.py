from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from starlette.responses import JSONResponse

from fastoauth.errors import OAuthError, TooManyRequestsError

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def model_response(
    model: BaseModel,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        content=model.model_dump(mode="json", exclude_none=True),
        status_code=status_code,
        headers=dict(headers) if headers else None,
    )


def error_response(
    error: OAuthError,
    status_code: int | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Render a protocol error as a direct JSON response."""
    response_headers: dict[str, Any] = dict(headers or {})
    if isinstance(error, TooManyRequestsError) and error.retry_after is not None:
        response_headers["Retry-After"] = str(error.retry_after)
    return JSONResponse(
        content=error.to_response_object(),
        status_code=status_code or error.status_code,
        headers=response_headers or None,
    )
