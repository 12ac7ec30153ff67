"""S3 client wrapper for listing, downloading and uploading objects."""

import logging
from pathlib import Path
from typing import Any, Iterator

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from webp_converter.models.schemas import ListingError, ObjectDescriptor

logger = logging.getLogger(__name__)


class S3Client:
    """Handles S3 operations.

    boto3 clients are thread-safe, so a single instance is shared by all
    conversion workers.
    """

    def __init__(self, client: Any):
        """
        Initialize S3 client wrapper.

        Args:
            client: boto3 S3 client instance.
        """
        self._client = client

    @property
    def endpoint_url(self) -> str:
        """Endpoint URL the underlying client talks to."""
        return self._client.meta.endpoint_url

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
    ) -> Iterator[ObjectDescriptor | ListingError]:
        """
        Lazily list objects in a bucket under a prefix.

        A malformed entry is yielded as a ListingError and listing continues.
        A failed page request is yielded as a ListingError and ends the
        stream, since the continuation token is lost with it.

        Args:
            bucket: S3 bucket name.
            prefix: Key prefix to list under.
            recursive: If False, only list objects directly under the prefix.

        Yields:
            ObjectDescriptor per object, ListingError per listing failure.
        """
        params = {"Bucket": bucket, "Prefix": prefix}
        if not recursive:
            params["Delimiter"] = "/"

        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    try:
                        yield ObjectDescriptor(
                            key=obj["Key"],
                            size=obj["Size"],
                            etag=obj.get("ETag", "").strip('"') or None,
                            last_modified=obj.get("LastModified"),
                        )
                    except (KeyError, ValidationError) as e:
                        yield ListingError(key=obj.get("Key"), message=str(e))
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to list objects in s3://%s/%s: %s", bucket, prefix, e)
            yield ListingError(message=f"Listing s3://{bucket}/{prefix} failed: {e}")

    def download_file(self, bucket: str, key: str, local_path: Path) -> bool:
        """
        Download a file from S3, overwriting any existing local file.

        Args:
            bucket: S3 bucket name.
            key: S3 object key.
            local_path: Local path to save the file.

        Returns:
            True if download succeeded, False otherwise.
        """
        try:
            logger.info("Downloading s3://%s/%s to %s", bucket, key, local_path)
            self._client.download_file(bucket, key, str(local_path))
            logger.info("Downloaded object from S3: %s", key)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to download s3://%s/%s: %s", bucket, key, e)
            return False

    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_length: int,
        content_type: str | None = None,
    ) -> bool:
        """
        Upload in-memory content to S3, replacing any object at the key.

        Args:
            bucket: S3 bucket name.
            key: S3 object key.
            body: Object content.
            content_length: Length of body in bytes.
            content_type: Optional content type.

        Returns:
            True if upload succeeded, False otherwise.
        """
        try:
            extra_args = {}
            if content_type:
                extra_args["ContentType"] = content_type

            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentLength=content_length,
                **extra_args,
            )
            logger.info("Uploaded: s3://%s/%s (%d bytes)", bucket, key, content_length)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to upload s3://%s/%s: %s", bucket, key, e)
            return False
