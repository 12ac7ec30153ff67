"""Infrastructure package."""

from webp_converter.infrastructure.dependency_injection import DependenciesContainer
from webp_converter.infrastructure.s3_client import S3Client
from webp_converter.infrastructure.s3_object_source import S3ObjectSource

__all__ = [
    "DependenciesContainer",
    "S3Client",
    "S3ObjectSource",
]
