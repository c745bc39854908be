from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class StoredAsset:
    # Path key the caller asked for, e.g. "assets/app.js".
    key: str
    # Key the bytes are stored under (a SHA-256 hex digest when a manifest is used).
    content_key: str
    body: bytes


def parse_manifest(raw: bytes) -> Mapping[str, str]:
    data = json.loads(raw.decode("utf-8"))
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError("Asset manifest must be a JSON object of string -> string")
    return MappingProxyType(dict(data))


class AssetStore:
    """Read-only key-value view of a published site.

    A manifest maps path keys ("index.html") to content keys. When one is present, path keys
    missing from it are misses; without one, path keys are read directly.
    """

    provider_name = "base"

    def __init__(self, manifest: Mapping[str, str] | None = None) -> None:
        self._manifest = manifest

    @property
    def manifest(self) -> Mapping[str, str] | None:
        return self._manifest

    def content_key_for(self, key: str) -> str | None:
        if self._manifest is None:
            return key
        return self._manifest.get(key)

    def read_value(self, content_key: str) -> bytes | None:
        raise NotImplementedError

    def lookup(self, key: str) -> StoredAsset | None:
        content_key = self.content_key_for(key)
        if content_key is None:
            logger.debug("Key %s is not in the %s manifest", key, self.provider_name)
            return None

        body = self.read_value(content_key)
        if body is None:
            return None
        return StoredAsset(key=key, content_key=content_key, body=body)
