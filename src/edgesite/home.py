from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

HOME_ENV = "EDGESITE_HOME"


@dataclass(frozen=True)
class SitePaths:
    """Where one site keeps its config, published store and logs."""

    home: Path

    @property
    def config_dir(self) -> Path:
        return self.home / "config"

    @property
    def store_dir(self) -> Path:
        return self.home / "store"

    @property
    def logs_dir(self) -> Path:
        return self.home / "logs"

    @property
    def site_config_path(self) -> Path:
        return self.config_dir / "site.json"


def resolve_edgesite_home(environ: Mapping[str, str] | None = None) -> Path:
    """EDGESITE_HOME if set (relative values are taken from the user's home), else the
    XDG data dir. Servers normally set EDGESITE_HOME explicitly."""

    env = os.environ if environ is None else environ

    raw = (env.get(HOME_ENV) or "").strip()
    if raw:
        return (Path.home() / Path(raw).expanduser()).resolve()

    data_home = (env.get("XDG_DATA_HOME") or "").strip()
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return (base / "edgesite").resolve()


def ensure_edgesite_layout(home: Path) -> SitePaths:
    paths = SitePaths(home=home)
    for path in (paths.config_dir, paths.store_dir, paths.logs_dir):
        path.mkdir(parents=True, exist_ok=True)
    return paths
