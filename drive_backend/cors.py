"""
CORS headers for every response the backend emits.

The player fetches from another origin, so error and preflight responses need the
same header set as successful streams or the browser reports an opaque CORS error.
"""

from typing import Any, Dict

from starlette.responses import JSONResponse, Response

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type, range"
ALLOWED_METHODS = "GET, POST, OPTIONS"
EXPOSED_HEADERS = "Content-Type, Content-Length, Accept-Ranges, Content-Range"


class CorsPolicy:
    """Fixed CORS header set for the configured origin."""

    def __init__(self, allowed_origin: str = "*"):
        self.allowed_origin = allowed_origin

    def headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Expose-Headers": EXPOSED_HEADERS,
        }

    def preflight_response(self) -> Response:
        """Empty 204 carrying only the CORS headers."""
        return Response(status_code=204, headers=self.headers())

    def json_response(self, payload: Any, status_code: int = 200) -> JSONResponse:
        return JSONResponse(content=payload, status_code=status_code, headers=self.headers())
