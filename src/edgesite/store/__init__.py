from __future__ import annotations

from edgesite.store.base import AssetStore, StoredAsset
from edgesite.store.filesystem import FilesystemAssetStore
from edgesite.store.manager import build_asset_store
from edgesite.store.s3 import S3AssetStore

__all__ = [
    "AssetStore",
    "FilesystemAssetStore",
    "S3AssetStore",
    "StoredAsset",
    "build_asset_store",
]
