from __future__ import annotations

from edgesite.config import SiteConfig
from edgesite.home import SitePaths
from edgesite.store.base import AssetStore
from edgesite.store.filesystem import FilesystemAssetStore
from edgesite.store.s3 import S3AssetStore


def build_asset_store(*, paths: SitePaths, config: SiteConfig) -> AssetStore:
    provider = config.store.provider

    if provider == "s3":
        cfg = config.store.s3
        store = S3AssetStore(
            bucket=cfg.bucket,
            prefix=cfg.prefix,
            endpoint_url=cfg.endpoint_url,
            access_key=(cfg.access_key or "").strip() or None,
            secret_key=(cfg.secret_key or "").strip() or None,
            region=cfg.region,
            use_ssl=cfg.use_ssl,
        )
        store.load_manifest()
        return store

    if provider == "fs":
        fs = FilesystemAssetStore.open(paths.store_dir)
        fs.ensure_layout()
        return fs

    raise ValueError(f"Unsupported store provider: {provider}")
