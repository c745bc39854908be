from __future__ import annotations

import logging

from edgesite.store.base import MANIFEST_NAME, AssetStore, parse_manifest

logger = logging.getLogger(__name__)


class S3AssetStore(AssetStore):
    """S3-compatible asset store; the site lives under an optional prefix of one bucket."""

    provider_name = "s3"

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str = "",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        use_ssl: bool = True,
        client=None,
    ) -> None:
        super().__init__()
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self._region = region
        self._use_ssl = use_ssl
        self._client = client

    def _get_client(self):
        if self._client is not None:
            return self._client

        import boto3
        from botocore.client import Config

        self._client = boto3.client(
            "s3",
            endpoint_url=self._endpoint_url,
            aws_access_key_id=self._access_key,
            aws_secret_access_key=self._secret_key,
            region_name=self._region,
            use_ssl=self._use_ssl,
            config=Config(s3={"addressing_style": "path"}),
        )
        return self._client

    def object_key(self, content_key: str) -> str:
        if not self._prefix:
            return content_key
        return f"{self._prefix}/{content_key}"

    def _is_missing(self, exc: Exception) -> bool:
        response = getattr(exc, "response", None) or {}
        code = str(response.get("Error", {}).get("Code", ""))
        return code in {"NoSuchKey", "404", "NotFound"}

    def read_value(self, content_key: str) -> bytes | None:
        client = self._get_client()
        try:
            r = client.get_object(Bucket=self._bucket, Key=self.object_key(content_key))
        except Exception as exc:
            if self._is_missing(exc):
                return None
            raise
        return r["Body"].read()

    def load_manifest(self) -> None:
        """Fetch the bucket's manifest once, at startup; absent means unmanifested."""

        raw = self.read_value(MANIFEST_NAME)
        if raw is None:
            logger.info("No %s in s3://%s/%s", MANIFEST_NAME, self._bucket, self._prefix)
            return
        self._manifest = parse_manifest(raw)
