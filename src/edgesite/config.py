from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from edgesite.home import SitePaths

_TRUTHY = {"1", "true", "yes", "on"}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class BasicAccount(_Frozen):
    """The single account allowed through the /admin gate."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: str = Field(default="admin")
    password: str = Field(default="admin", alias="pass")


class NetworkConfig(_Frozen):
    bind_host: str = Field(default="127.0.0.1")
    port: int = Field(default=8787, ge=1, le=65535)


class LoggingConfig(_Frozen):
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class CacheConfig(_Frozen):
    browser_ttl: int | None = Field(
        default=None,
        ge=0,
        description="If set, asset responses carry Cache-Control: max-age=<browser_ttl>.",
    )
    edge_ttl: int = Field(
        default=2 * 60 * 60 * 24,
        ge=60,
        description="Seconds a fronting edge cache may keep an asset (CDN-Cache-Control).",
    )


class S3StoreConfig(_Frozen):
    """S3-compatible bucket holding the published site."""

    endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL, e.g. http://127.0.0.1:8333. If omitted, AWS defaults apply.",
    )
    access_key: str | None = Field(default=None)
    secret_key: str | None = Field(default=None)
    bucket: str = Field(default="edgesite")
    prefix: str = Field(default="", description="Key prefix of the site inside the bucket.")
    region: str = Field(default="us-east-1")
    use_ssl: bool = Field(default=True)


class StoreConfig(_Frozen):
    provider: Literal["fs", "s3"] = Field(default="fs")
    s3: S3StoreConfig = Field(default_factory=S3StoreConfig)


class SiteConfig(_Frozen):
    version: str = Field(default="1")
    debug: bool = Field(
        default=False,
        description=(
            "Bypass edge caching of assets and expose failure messages in error responses."
        ),
    )
    auth: BasicAccount = Field(default_factory=BasicAccount)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_site_config(paths: SitePaths) -> SiteConfig:
    """Load config from ${EDGESITE_HOME}/config/site.json.

    - If missing: returns defaults.
    - Validation is performed by Pydantic.
    """

    config_path = paths.site_config_path
    if not config_path.exists():
        return SiteConfig()

    raw = _read_json(config_path)
    return SiteConfig.model_validate(raw)


def write_site_config(paths: SitePaths, config: SiteConfig) -> None:
    """Persist config to ${EDGESITE_HOME}/config/site.json."""

    payload = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.site_config_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def apply_env_overrides(config: SiteConfig, environ: Mapping[str, str]) -> SiteConfig:
    """Return a copy of config with EDGESITE_* environment overrides applied.

    Credentials can be injected this way by a secret manager instead of living in site.json.
    """

    update: dict[str, Any] = {}

    raw_debug = environ.get("EDGESITE_DEBUG")
    if raw_debug is not None and raw_debug.strip():
        update["debug"] = raw_debug.strip().lower() in _TRUTHY

    auth_update: dict[str, str] = {}
    if environ.get("EDGESITE_BASIC_USER"):
        auth_update["user"] = environ["EDGESITE_BASIC_USER"]
    if environ.get("EDGESITE_BASIC_PASS"):
        auth_update["password"] = environ["EDGESITE_BASIC_PASS"]
    if auth_update:
        update["auth"] = config.auth.model_copy(update=auth_update)

    net_update: dict[str, Any] = {}
    if environ.get("EDGESITE_BIND"):
        net_update["bind_host"] = environ["EDGESITE_BIND"]
    if environ.get("EDGESITE_PORT"):
        net_update["port"] = int(environ["EDGESITE_PORT"])
    if net_update:
        update["network"] = config.network.model_copy(update=net_update)

    if not update:
        return config
    return config.model_copy(update=update)
