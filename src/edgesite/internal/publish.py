from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from edgesite.digest import sha256_hex_file
from edgesite.home import ensure_edgesite_layout, resolve_edgesite_home
from edgesite.store.filesystem import FilesystemAssetStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    files: int
    blobs: int
    manifest: dict[str, str]


def publish_directory(store: FilesystemAssetStore, source_dir: Path) -> PublishResult:
    """Upload a built site into the store and replace its manifest.

    Blobs are never removed, so a previous manifest stays servable until the new one lands.
    """

    if not source_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {source_dir}")

    store.ensure_layout()

    manifest: dict[str, str] = {}
    for path in sorted(p for p in source_dir.rglob("*") if p.is_file()):
        key = path.relative_to(source_dir).as_posix()
        digest = sha256_hex_file(path)
        store.ingest_existing_file(source_path=path, digest=digest)
        manifest[key] = digest
        logger.debug("Published %s as %s", key, digest)

    store.write_manifest(manifest)
    logger.info("Published %d files from %s", len(manifest), source_dir)

    return PublishResult(files=len(manifest), blobs=len(set(manifest.values())), manifest=manifest)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m edgesite.internal.publish",
        description="Publish a built single-page app into the EdgeSite filesystem store.",
    )
    parser.add_argument("source", type=Path, help="Build output directory (e.g. dist/)")
    parser.add_argument("--home", type=Path, default=None, help="Override EDGESITE_HOME")
    args = parser.parse_args(argv)

    environ = None
    if args.home is not None:
        environ = {"EDGESITE_HOME": str(args.home)}

    home = resolve_edgesite_home(environ)
    paths = ensure_edgesite_layout(home)

    store = FilesystemAssetStore(paths.store_dir)
    result = publish_directory(store, args.source)

    summary = {"store": str(paths.store_dir), "files": result.files, "blobs": result.blobs}
    print(json.dumps(summary, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
