from __future__ import annotations

import logging
from typing import Final

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from edgesite.assets import ENTRY_PAGE, AssetMiss, CacheOptions, get_asset
from edgesite.auth import BASIC_CHALLENGE, AuthFailure, authenticate_request
from edgesite.config import SiteConfig
from edgesite.headers import apply_security_headers
from edgesite.store.base import AssetStore

logger = logging.getLogger(__name__)

OPAQUE_ERROR: Final[str] = "Internal Error"
UNCACHEABLE_FALLBACK_HEADERS: Final[tuple[str, ...]] = ("ETag", "Cache-Control")


class Dispatcher:
    """Exact-path routing for the site; anything unrouted is served from the asset store."""

    def __init__(self, *, config: SiteConfig, store: AssetStore) -> None:
        self._config = config
        self._store = store
        self._cache = CacheOptions.from_config(config)

    @property
    def config(self) -> SiteConfig:
        return self._config

    @property
    def store(self) -> AssetStore:
        return self._store

    async def dispatch(self, request: Request) -> Response | AssetMiss:
        match request.url.path:
            case "/":
                return await self._serve_asset(request)
            case "/home":
                return PlainTextResponse("Anyone can access the homepage.")
            case "/logout":
                # No WWW-Authenticate here: it would make the browser prompt for credentials again.
                return PlainTextResponse("Logged out.", status_code=401)
            case "/admin":
                return self._admin(request)
            case "/favicon.ico" | "/robots.txt":
                return Response(status_code=204)
            case _:
                return await self._serve_asset(request)

    async def _serve_asset(self, request: Request) -> Response | AssetMiss:
        result = await get_asset(request, self._store, options=self._cache)
        if isinstance(result, AssetMiss):
            return result
        return apply_security_headers(result.to_response())

    def _admin(self, request: Request) -> Response:
        outcome = authenticate_request(request, self._config.auth)

        if outcome is None:
            return PlainTextResponse(
                "You need to login.",
                status_code=401,
                headers={"WWW-Authenticate": BASIC_CHALLENGE},
            )

        if isinstance(outcome, AuthFailure):
            logger.info("Rejected /admin credentials: %s", outcome.reason)
            return PlainTextResponse(outcome.reason, status_code=outcome.status)

        return PlainTextResponse(
            "You have private access.",
            headers={"Cache-Control": "no-store"},
        )


class Supervisor:
    """Turns every dispatch outcome into a response, serving the SPA entry page on misses."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def debug(self) -> bool:
        return self._dispatcher.config.debug

    async def handle(self, request: Request) -> Response:
        try:
            outcome = await self._dispatcher.dispatch(request)
        except Exception as exc:
            logger.exception("Unhandled error while serving %s", request.url.path)
            return await self.recover(request, status=500, message=str(exc) or repr(exc))

        if isinstance(outcome, Response):
            return outcome
        return await self.recover(request, status=outcome.status, message=outcome.message)

    async def recover(self, request: Request, *, status: int, message: str) -> Response:
        if not self.debug:
            try:
                fallback = await get_asset(request, self._dispatcher.store, path=ENTRY_PAGE)
            except Exception:
                logger.exception("Entry page lookup failed for %s", request.url.path)
                fallback = None
            if fallback is not None and not isinstance(fallback, AssetMiss):
                logger.info("Serving entry page for %s", request.url.path)
                # Let the client-side router render its not-found view.
                response = fallback.to_response(status=404)
                # Never cached under the requested URL.
                for name in UNCACHEABLE_FALLBACK_HEADERS:
                    if name in response.headers:
                        del response.headers[name]
                response.headers["CDN-Cache-Control"] = "no-store"
                return response

        return failure_response(status=status, message=message, debug=self.debug)


def failure_response(*, status: int, message: str, debug: bool) -> Response:
    return PlainTextResponse(message if debug else OPAQUE_ERROR, status_code=status)
