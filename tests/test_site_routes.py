from __future__ import annotations

import base64
import json
from pathlib import Path

from fastapi.testclient import TestClient

from edgesite.app import create_app
from edgesite.digest import sha256_hex
from edgesite.headers import SECURITY_HEADERS
from edgesite.home import ensure_edgesite_layout
from edgesite.internal.publish import publish_directory
from edgesite.store import FilesystemAssetStore

INDEX = b"<!doctype html><app-root></app-root>"
APP_JS = b"console.log('app');"


def _publish_site(home: Path) -> None:
    dist = home.parent / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_bytes(INDEX)
    (dist / "assets" / "app.js").write_bytes(APP_JS)

    paths = ensure_edgesite_layout(home)
    publish_directory(FilesystemAssetStore(paths.store_dir), dist)


def _site(tmp_path: Path, monkeypatch, *, publish: bool = True, config: dict | None = None):
    home = tmp_path / "home"
    monkeypatch.setenv("EDGESITE_HOME", str(home))
    paths = ensure_edgesite_layout(home)
    if config is not None:
        paths.site_config_path.write_text(json.dumps(config), encoding="utf-8")
    if publish:
        _publish_site(home)
    return TestClient(create_app())


def _basic(raw: str) -> dict[str, str]:
    token = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def _assert_security_headers(response) -> None:
    for name, value in SECURITY_HEADERS.items():
        assert response.headers.get(name) == value


def test_fixed_routes(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        home = client.get("/home")
        assert home.status_code == 200
        assert home.text == "Anyone can access the homepage."

        logout = client.get("/logout")
        assert logout.status_code == 401
        assert logout.text == "Logged out."
        assert "www-authenticate" not in logout.headers

        for path in ("/favicon.ico", "/robots.txt"):
            r = client.get(path)
            assert r.status_code == 204
            assert r.content == b""


def test_fixed_routes_ignore_method_and_headers(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        assert client.post("/home", headers=_basic("x:y")).status_code == 200
        assert client.delete("/logout").status_code == 401
        assert client.put("/robots.txt", content=b"ignored").status_code == 204


def test_root_serves_entry_page_with_security_headers(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        r = client.get("/")
        assert r.status_code == 200
        assert r.content == INDEX
        assert r.headers["content-type"] == "text/html; charset=utf-8"
        assert r.headers["etag"] == f'"{sha256_hex(INDEX)}"'
        assert r.headers["cdn-cache-control"] == "max-age=172800"
        _assert_security_headers(r)


def test_assets_served_from_store(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        r = client.get("/assets/app.js")
        assert r.status_code == 200
        assert r.content == APP_JS
        assert "javascript" in r.headers["content-type"]
        _assert_security_headers(r)


def test_client_side_routes_resolve_to_entry_page(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        for path in ("/dashboard", "/users/42/edit", "/nested/index.html", "/assets/"):
            r = client.get(path)
            assert r.status_code == 200, path
            assert r.content == INDEX
            _assert_security_headers(r)


def test_asset_miss_falls_back_to_entry_page(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        r = client.get("/assets/missing.js")
        assert r.status_code == 404
        assert r.content == INDEX
        assert r.headers["content-type"] == "text/html; charset=utf-8"
        # Only asset hits are augmented.
        for name in SECURITY_HEADERS:
            assert name not in r.headers
        # A CDN must not keep the fallback under the missing URL.
        assert r.headers["cdn-cache-control"] == "no-store"
        assert "etag" not in r.headers
        assert "cache-control" not in r.headers


def test_asset_miss_without_entry_page_is_opaque(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch, publish=False) as client:
        r = client.get("/assets/missing.js")
        assert r.status_code == 404
        assert r.text == "Internal Error"

        root = client.get("/")
        assert root.status_code == 404
        assert root.text == "Internal Error"


def test_debug_mode_exposes_miss_and_bypasses_cache(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch, config={"debug": True}) as client:
        miss = client.get("/assets/missing.js")
        assert miss.status_code == 404
        assert miss.text == "could not find assets/missing.js in the asset store"

        hit = client.get("/assets/app.js")
        assert hit.status_code == 200
        assert hit.headers["cdn-cache-control"] == "no-store"
        assert "cache-control" not in hit.headers


def test_browser_ttl_from_config(tmp_path: Path, monkeypatch) -> None:
    config = {"cache": {"browser_ttl": 300, "edge_ttl": 3600}}
    with _site(tmp_path, monkeypatch, config=config) as client:
        r = client.get("/assets/app.js")
        assert r.headers["cache-control"] == "max-age=300"
        assert r.headers["cdn-cache-control"] == "max-age=3600"

        fallback = client.get("/assets/chunk-new.js")
        assert fallback.status_code == 404
        assert "cache-control" not in fallback.headers
        assert fallback.headers["cdn-cache-control"] == "no-store"


def test_non_get_asset_request_is_rejected(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        r = client.post("/assets/app.js")
        assert r.status_code == 405
        assert r.text == "Internal Error"

    monkeypatch.setenv("EDGESITE_DEBUG", "1")
    with _site(tmp_path / "debug", monkeypatch) as client:
        r = client.delete("/")
        assert r.status_code == 405
        assert r.text == "DELETE is not a valid request method"


def test_repeated_requests_are_identical(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        for path in ("/", "/assets/app.js", "/assets/missing.js", "/admin", "/home"):
            first = client.get(path, headers=_basic("admin:admin"))
            second = client.get(path, headers=_basic("admin:admin"))
            assert first.status_code == second.status_code
            assert first.content == second.content
            assert dict(first.headers) == dict(second.headers)


def test_any_method_reaches_fixed_routes(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        assert client.request("PROPFIND", "/home").status_code == 200
        assert client.request("TRACE", "/logout").status_code == 401
        assert client.request("MKCOL", "/robots.txt").status_code == 204
        assert client.request("PROPFIND", "/admin").status_code == 401
        r = client.request("REPORT", "/admin", headers=_basic("admin:admin"))
        assert r.status_code == 200


def test_unknown_extension_is_a_client_route(tmp_path: Path, monkeypatch) -> None:
    with _site(tmp_path, monkeypatch) as client:
        r = client.get("/molecules/water.xyz")
        assert r.status_code == 200
        assert r.content == INDEX
