# app/middleware/cors.py
from typing import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class PathExemptCORSMiddleware(CORSMiddleware):
    """
    App-wide CORS, except for paths that answer CORS themselves.

    The relay sends its own fixed header set and an empty preflight body, so
    its requests (preflights included) go straight to the route.
    """
    def __init__(self, app: ASGIApp, exempt_paths: Iterable[str] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_paths = frozenset(p.rstrip("/") for p in exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope.get("path", "").rstrip("/") in self.exempt_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
