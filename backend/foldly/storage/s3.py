"""S3-compatible storage adapter (AWS S3, MinIO, Cloudflare R2) on boto3."""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StorageError
from .base import BucketContext, StorageAdapter

logger = logging.getLogger(__name__)


class S3StorageAdapter(StorageAdapter):
    """One bucket per context; copies are server-side ``copy_object`` calls.

    boto3 clients are thread-safe, so a single client serves the copy pool.
    """

    def __init__(self, buckets: Dict[BucketContext, str], client: Optional[Any] = None, **client_kwargs):
        missing = [ctx.value for ctx in BucketContext if ctx not in buckets]
        if missing:
            raise ValueError(f"No bucket configured for contexts: {missing}")
        self.buckets = dict(buckets)
        self.client = client or boto3.client("s3", **client_kwargs)

    @classmethod
    def from_settings(cls, settings) -> "S3StorageAdapter":
        return cls(
            buckets={
                BucketContext.SHARED: settings.shared_bucket,
                BucketContext.WORKSPACE: settings.workspace_bucket,
            },
            endpoint_url=settings.s3_endpoint_url,
            region_name=settings.s3_region,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
        )

    def copy_blob(self, source_key, dest_key, source_context, dest_context) -> str:
        copy_source = {"Bucket": self.buckets[source_context], "Key": source_key}
        try:
            self.client.copy_object(
                Bucket=self.buckets[dest_context],
                Key=dest_key,
                CopySource=copy_source,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Blob copy failed: %s -> %s", source_key, dest_key)
            raise StorageError("Failed to copy file to storage", key=source_key, original_error=exc) from exc
        logger.info("Copied blob: %s -> %s", source_key, dest_key)
        return dest_key

    def delete_blob(self, key: str, context: BucketContext) -> None:
        try:
            self.client.delete_object(Bucket=self.buckets[context], Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Blob delete failed: %s", key)
            raise StorageError("Failed to delete file from storage", key=key, original_error=exc) from exc
        logger.info("Deleted blob: %s", key)

    def exists(self, key: str, context: BucketContext) -> bool:
        try:
            self.client.head_object(Bucket=self.buckets[context], Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError("Failed to inspect storage object", key=key, original_error=exc) from exc
        return True
