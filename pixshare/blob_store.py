"""
Blob store: media objects in an S3 bucket, keyed by post id.

boto3 is synchronous, so each call runs in a worker thread to keep the
event loop free.  An upload is a single ``put_object`` call; there is no
multipart transfer and no retry beyond what botocore itself does.

Public URLs are derived from the bucket name and the key alone, which
is why uploads default to the ``public-read`` ACL.
"""
import asyncio
import logging
from typing import BinaryIO, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pixshare.config import settings
from pixshare.errors import BlobStoreError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """What the post service needs from media storage."""

    async def upload(
        self, key: str, stream: BinaryIO, content_type: str | None, acl: str
    ) -> str:
        """Store *stream* under *key* and return its public URL."""
        ...

    async def delete(self, key: str) -> None:
        ...


def public_url(bucket: str, key: str) -> str:
    return f"https://{bucket}.s3.amazonaws.com/{key}"


class S3BlobStore:
    def __init__(self, client, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls) -> "S3BlobStore":
        client = boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
        return cls(client, settings.S3_BUCKET_NAME)

    async def upload(
        self, key: str, stream: BinaryIO, content_type: str | None, acl: str
    ) -> str:
        params = {"Bucket": self.bucket, "Key": key, "Body": stream, "ACL": acl}
        if content_type:
            params["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._client.put_object, **params)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"Error uploading file to S3: {exc}") from exc
        logger.info("Uploaded media %s to bucket %s", key, self.bucket)
        return public_url(self.bucket, key)

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"Failed to delete the file from S3: {exc}") from exc
        logger.info("Deleted media %s from bucket %s", key, self.bucket)
