"""CORS handling for the OAuth endpoints.

Browser-based clients call the token, registration and discovery endpoints
cross-origin, so the router decorates its own responses and answers
preflight requests itself.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from fastoauth.server.auth.settings import CorsOptions


class CorsPolicy:
    def __init__(self, options: CorsOptions):
        self.options = options

    def allowed_origin(self, request: Request) -> str | None:
        """Return the value for ``Access-Control-Allow-Origin``, if any."""
        origin = request.headers.get("origin")
        if self.options.origin == "*":
            # a wildcard is not allowed together with credentials
            if self.options.credentials and origin:
                return origin
            return "*"
        if origin and origin in self.options.origin:
            return origin
        return None

    def headers(self, request: Request) -> dict[str, str]:
        allowed = self.allowed_origin(request)
        if allowed is None:
            return {}
        headers = {"Access-Control-Allow-Origin": allowed}
        if allowed != "*":
            headers["Vary"] = "Origin"
        if self.options.credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if self.options.exposed_headers:
            headers["Access-Control-Expose-Headers"] = ", ".join(
                self.options.exposed_headers
            )
        return headers

    def preflight(self, request: Request) -> Response:
        headers = self.headers(request)
        if headers:
            headers["Access-Control-Allow-Methods"] = ", ".join(self.options.methods)
            headers["Access-Control-Allow-Headers"] = ", ".join(
                self.options.allowed_headers
            )
            if self.options.max_age is not None:
                headers["Access-Control-Max-Age"] = str(self.options.max_age)
        return Response(status_code=204, headers=headers)

    def apply(self, request: Request, response: Response) -> Response:
        for name, value in self.headers(request).items():
            response.headers[name] = value
        return response
