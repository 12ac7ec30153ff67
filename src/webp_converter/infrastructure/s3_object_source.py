from typing import Iterator

from webp_converter.infrastructure.s3_client import S3Client
from webp_converter.models.object_source import ObjectSource
from webp_converter.models.schemas import ListingError, ObjectDescriptor


class S3ObjectSource(ObjectSource):
    """Object source that enumerates an S3-compatible bucket."""

    def __init__(self, s3_client: S3Client):
        self._s3_client = s3_client

    def list_objects(
        self, bucket: str, prefix: str, recursive: bool = True
    ) -> Iterator[ObjectDescriptor | ListingError]:
        return self._s3_client.list_objects(bucket, prefix=prefix, recursive=recursive)
