from __future__ import annotations

import logging
import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from edgesite.config import SiteConfig
from edgesite.store.base import AssetStore

logger = logging.getLogger(__name__)

ENTRY_PAGE: Final[str] = "/index.html"
DEFAULT_MIME_TYPE: Final[str] = "text/plain"
DEFAULT_EDGE_TTL: Final[int] = 2 * 60 * 60 * 24
SERVABLE_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD"})

# Build outputs that the stdlib registry does not know about.
_EXTRA_TYPES: Final[dict[str, str]] = {
    ".map": "application/json",
    ".mjs": "application/javascript",
    ".webmanifest": "application/manifest+json",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".wasm": "application/wasm",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

# Built-in table only, so the answer never depends on the host's /etc/mime.types.
_MIME_TYPES: Final[mimetypes.MimeTypes] = mimetypes.MimeTypes()


@dataclass(frozen=True)
class CacheOptions:
    bypass_cache: bool = False
    browser_ttl: int | None = None
    edge_ttl: int = DEFAULT_EDGE_TTL

    @classmethod
    def from_config(cls, config: SiteConfig) -> CacheOptions:
        return cls(
            bypass_cache=config.debug,
            browser_ttl=config.cache.browser_ttl,
            edge_ttl=config.cache.edge_ttl,
        )

    def headers(self) -> dict[str, str]:
        if self.bypass_cache:
            return {"CDN-Cache-Control": "no-store"}

        headers = {"CDN-Cache-Control": f"max-age={self.edge_ttl}"}
        if self.browser_ttl is not None:
            headers["Cache-Control"] = f"max-age={self.browser_ttl}"
        return headers


@dataclass(frozen=True)
class AssetResponse:
    body: bytes
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)

    def to_response(self, *, status: int | None = None) -> Response:
        return Response(
            content=self.body,
            status_code=self.status if status is None else status,
            headers=dict(self.headers),
        )


@dataclass(frozen=True)
class AssetMiss:
    status: int
    message: str


def guess_mime_type(path: str) -> str | None:
    last = path.rsplit("/", 1)[-1]
    if "." not in last:
        return None

    ext = "." + last.rsplit(".", 1)[-1].lower()
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]

    guess, _enc = _MIME_TYPES.guess_type(last, strict=False)
    return guess


def map_request_to_asset(path: str) -> str:
    """Default mapping of a request path to the asset path it is served from.

    "/" and "/docs/" map to their index.html; "/docs" (no recognised file type) is treated as
    a directory too.
    """

    if path.endswith("/"):
        return path + "index.html"
    if guess_mime_type(path) is None:
        return path + "/index.html"
    return path


def normalize_asset_path(path: str) -> str:
    """Map a request path to its asset path, pinning every index.html to the site root one."""

    mapped = map_request_to_asset(path)
    if mapped.endswith(ENTRY_PAGE):
        return ENTRY_PAGE
    return mapped


def asset_key(asset_path: str) -> str:
    return asset_path.lstrip("/")


def content_type_for(key: str) -> str:
    mime_type = guess_mime_type(key) or DEFAULT_MIME_TYPE
    if mime_type.startswith("text/") or mime_type == "application/javascript":
        mime_type += "; charset=utf-8"
    return mime_type


async def get_asset(
    request: Request,
    store: AssetStore,
    *,
    options: CacheOptions | None = None,
    path: str | None = None,
) -> AssetResponse | AssetMiss:
    """Fetch the asset for a request (or for an explicit path) from the store."""

    options = options or CacheOptions()

    if request.method not in SERVABLE_METHODS:
        return AssetMiss(status=405, message=f"{request.method} is not a valid request method")

    asset_path = normalize_asset_path(request.url.path if path is None else path)
    key = asset_key(asset_path)

    stored = await run_in_threadpool(store.lookup, key)
    if stored is None:
        logger.debug("Asset store miss for %s", key)
        return AssetMiss(status=404, message=f"could not find {key} in the asset store")

    headers = {
        "Content-Type": content_type_for(key),
        "ETag": f'"{stored.content_key}"',
        **options.headers(),
    }
    return AssetResponse(body=stored.body, status=200, headers=headers)
