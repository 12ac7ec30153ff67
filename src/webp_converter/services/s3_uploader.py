"""S3 upload service for converted images."""

import logging

from webp_converter.infrastructure.s3_client import S3Client

logger = logging.getLogger(__name__)

WEBP_CONTENT_TYPE = "image/webp"


class S3Uploader:
    """Uploads converted images back to the bucket."""

    def __init__(self, s3_client: S3Client, bucket: str):
        """
        Initialize S3 uploader.

        Args:
            s3_client: S3Client instance.
            bucket: Bucket to upload to.
        """
        self._s3_client = s3_client
        self._bucket = bucket

    def upload_webp(self, key: str, data: bytes) -> bool:
        """
        Upload WebP bytes to the same key as the original image.

        The original object is replaced; the key keeps its original extension.

        Args:
            key: S3 object key of the original image.
            data: WebP content.

        Returns:
            True if upload succeeded, False otherwise.
        """
        return self._s3_client.put_object(
            bucket=self._bucket,
            key=key,
            body=data,
            content_length=len(data),
            content_type=WEBP_CONTENT_TYPE,
        )
