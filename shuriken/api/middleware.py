"""Redirect middleware.

Runs the redirect resolver on every inbound request before FastAPI's own
routing. A positive match short-circuits with a redirect response; anything
else is passed to the next handler untouched.
"""

from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from shuriken.components.redirects import RedirectAction, RedirectResolver


class RedirectMiddleware(BaseHTTPMiddleware):
    """Intercept requests whose path matches a published redirect rule.

    The resolver is built per request by `resolver_factory`, so each request
    gets fresh store connections. Store calls block, so they run in the
    thread pool.
    """

    def __init__(self, app: ASGIApp, resolver_factory: Callable[[], RedirectResolver]):
        super().__init__(app)
        self.resolver_factory = resolver_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        resolver = self.resolver_factory()
        action = await run_in_threadpool(resolver.on_request, request.url.path)

        if isinstance(action, RedirectAction):
            return RedirectResponse(url=action.redirect_to, status_code=action.status)

        return await call_next(request)
