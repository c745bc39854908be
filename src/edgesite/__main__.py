from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

import uvicorn

from edgesite.app import LOG_FORMAT, create_app
from edgesite.config import apply_env_overrides, load_site_config
from edgesite.home import ensure_edgesite_layout, resolve_edgesite_home


def main() -> None:
    home = resolve_edgesite_home()
    paths = ensure_edgesite_layout(home)

    config = apply_env_overrides(load_site_config(paths), os.environ)

    log_file = paths.logs_dir / "site.log"
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            RotatingFileHandler(
                log_file,
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
                encoding="utf-8",
            ),
            logging.StreamHandler(),
        ],
    )

    uvicorn.run(create_app(config=config), host=config.network.bind_host, port=config.network.port)


if __name__ == "__main__":
    main()
