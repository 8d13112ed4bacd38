"""
CORS preflight middleware.

Every OPTIONS request is answered with the 204 preflight before routing, whatever
the path or query string. Other requests pass through untouched.
"""

import logging

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class PreflightMiddleware:
    """Answers OPTIONS requests with the streaming proxy's preflight response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await self.app(scope, receive, send)
            return

        proxy = scope["app"].state.streaming_proxy
        logger.debug(f"Answering preflight for {scope['path']}")
        response = proxy.handle_preflight()
        await response(scope, receive, send)
