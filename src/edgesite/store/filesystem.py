from __future__ import annotations

import json
import os
import shutil
from collections.abc import Mapping
from pathlib import Path

from edgesite.digest import is_content_key
from edgesite.store.base import MANIFEST_NAME, AssetStore, parse_manifest


class FilesystemAssetStore(AssetStore):
    """Local filesystem asset store.

    Blobs are content-addressed by SHA-256 hex.

    Base dir: ${EDGESITE_HOME}/store
    Blob path: files/<aa>/<sha256>
    Manifest: manifest.json
    """

    provider_name = "fs"

    def __init__(self, base_dir: Path, manifest: Mapping[str, str] | None = None) -> None:
        super().__init__(manifest)
        self._base_dir = base_dir

    @classmethod
    def open(cls, base_dir: Path) -> FilesystemAssetStore:
        """Open a store, loading its manifest once if one was published."""

        manifest_path = base_dir / MANIFEST_NAME
        manifest = None
        if manifest_path.exists():
            manifest = parse_manifest(manifest_path.read_bytes())
        return cls(base_dir, manifest)

    def ensure_layout(self) -> None:
        (self._base_dir / "files").mkdir(parents=True, exist_ok=True)

    def key_for_digest(self, digest: str) -> str:
        digest = digest.strip().lower()
        shard = digest[:2] if len(digest) >= 2 else "xx"
        return str(Path("files") / shard / digest)

    def resolve_path(self, storage_key: str) -> Path:
        return (self._base_dir / storage_key).resolve()

    def read_value(self, content_key: str) -> bytes | None:
        if self._manifest is not None:
            if not is_content_key(content_key):
                return None
            path = self.resolve_path(self.key_for_digest(content_key))
        else:
            # Unmanifested stores are plain directory trees; stay inside them.
            path = self.resolve_path(content_key)
            if not path.is_relative_to(self._base_dir.resolve()):
                return None

        if not path.is_file():
            return None
        return path.read_bytes()

    def ingest_existing_file(self, *, source_path: Path, digest: str) -> Path:
        """Copy an existing file into storage under its digest.

        Always a copy: a blob must not change when the build output is rewritten later.
        """

        dst = self.resolve_path(self.key_for_digest(digest))
        dst.parent.mkdir(parents=True, exist_ok=True)

        if dst.exists():
            return dst

        tmp = dst.with_name(dst.name + ".tmp")
        shutil.copyfile(source_path, tmp)
        tmp.replace(dst)

        try:
            os.chmod(dst, 0o644)
        except OSError:
            pass

        return dst

    def write_manifest(self, manifest: Mapping[str, str]) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        path = self._base_dir / MANIFEST_NAME
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(dict(manifest), f, indent=2, sort_keys=True)
            f.write("\n")
        tmp.replace(path)
