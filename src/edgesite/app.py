from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Final

from fastapi import FastAPI, Request
from starlette.responses import Response

from edgesite import __version__
from edgesite.config import SiteConfig, apply_env_overrides, load_site_config
from edgesite.dispatch import Dispatcher, Supervisor, failure_response
from edgesite.home import SitePaths, ensure_edgesite_layout, resolve_edgesite_home
from edgesite.store.base import AssetStore
from edgesite.store.manager import build_asset_store

logger = logging.getLogger(__name__)

LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_file_logging(paths: SitePaths, config: SiteConfig) -> None:
    log_path = paths.logs_dir / "site.log"
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.logging.max_size_mb * 1024 * 1024,
        backupCount=config.logging.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if config.debug else logging.INFO)
    # Avoid adding duplicate handlers if reloaded
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        root.addHandler(file_handler)


def create_app(*, config: SiteConfig | None = None, store: AssetStore | None = None) -> FastAPI:
    """Build the site app.

    Config and store are loaded from EDGESITE_HOME at startup unless given explicitly.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        home = resolve_edgesite_home()
        paths = ensure_edgesite_layout(home)

        site_config = config
        if site_config is None:
            site_config = apply_env_overrides(load_site_config(paths), os.environ)

        configure_file_logging(paths, site_config)

        logger.info("EdgeSite starting up")
        logger.info(f"Store provider: {site_config.store.provider}, debug: {site_config.debug}")

        asset_store = store
        if asset_store is None:
            asset_store = build_asset_store(paths=paths, config=site_config)

        dispatcher = Dispatcher(config=site_config, store=asset_store)

        app.state.edgesite_paths = paths
        app.state.edgesite_config = site_config
        app.state.asset_store = asset_store
        app.state.supervisor = Supervisor(dispatcher)

        yield

    # Every path belongs to the site, including /docs.
    app = FastAPI(
        title="EdgeSite",
        version=__version__,
        lifespan=_lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Request failed outside the supervisor: %s", request.url.path)
        site_config = getattr(request.app.state, "edgesite_config", None)
        debug = bool(getattr(site_config, "debug", False))
        return failure_response(status=500, message=str(exc) or repr(exc), debug=debug)

    async def handle_event(request: Request) -> Response:
        return await request.app.state.supervisor.handle(request)

    # methods=None: every method, WebDAV verbs included, reaches the supervisor.
    app.add_route("/{path:path}", handle_event, include_in_schema=False)

    return app
