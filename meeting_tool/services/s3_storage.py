from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, unquote

from botocore.exceptions import BotoCoreError, ClientError

from meeting_tool.config import Settings
from meeting_tool.errors import StorageUnavailableError, TransferError
from meeting_tool.utils.auth_aws import client_config, get_session

logger = logging.getLogger(__name__)


class S3Storage:
    """Issues presigned transcript URLs and maps object URLs back to keys."""

    def __init__(self, client: Any, bucket: str, region: str, expires_in: int = 3600):
        self.client = client
        self.bucket = bucket
        self.region = region
        self.expires_in = expires_in

    @classmethod
    def from_settings(cls, settings: Settings, session: Any | None = None) -> "S3Storage":
        if not settings.s3_bucket_name:
            raise StorageUnavailableError("Missing S3 configuration: set S3_BUCKET_NAME")
        session = session or get_session(settings)
        client = session.client("s3", config=client_config(settings))
        return cls(
            client,
            bucket=settings.s3_bucket_name,
            region=settings.aws_region or "",
            expires_in=settings.presigned_url_expiry_seconds,
        )

    @property
    def url_prefix(self) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/"

    def object_url(self, key: str) -> str:
        return self.url_prefix + quote(key, safe="/")

    def key_from_url(self, url: str) -> str | None:
        if not url.startswith(self.url_prefix):
            return None
        key = unquote(url[len(self.url_prefix):].split("?", 1)[0])
        return key or None

    def issue_upload_url(self, key: str) -> str:
        return self._presign("put_object", key)

    def issue_view_url(self, key: str) -> str:
        return self._presign("get_object", key)

    def _presign(self, operation: str, key: str) -> str:
        try:
            return self.client.generate_presigned_url(
                operation,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Presigning %s failed bucket=%s key=%s", operation, self.bucket, key)
            raise TransferError(f"Could not issue {operation} URL for {key}") from exc
