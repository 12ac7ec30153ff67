"""S3 download service for source images."""

import logging
from pathlib import Path, PurePosixPath

from webp_converter.infrastructure.s3_client import S3Client

logger = logging.getLogger(__name__)


class S3Downloader:
    """Downloads objects into the local staging directory."""

    def __init__(self, s3_client: S3Client, bucket: str, staging_dir: Path):
        """
        Initialize S3 downloader.

        Args:
            s3_client: S3Client instance.
            bucket: Bucket to download from.
            staging_dir: Local directory for staging artifacts.
        """
        self._s3_client = s3_client
        self._bucket = bucket
        self._staging_dir = Path(staging_dir)

    def local_path_for(self, key: str) -> Path:
        """
        Staging path for an object key.

        The path mirrors the key, so concurrent workers never share a file.
        Parent references are dropped to keep the path inside the staging dir.
        """
        parts = [part for part in PurePosixPath(key).parts if part not in ("/", ".", "..")]
        return self._staging_dir.joinpath(*parts)

    def download_object(self, key: str) -> Path | None:
        """
        Download an object to its staging path.

        Args:
            key: S3 object key.

        Returns:
            Path to downloaded file, or None if download failed.
        """
        local_path = self.local_path_for(key)
        local_path.parent.mkdir(parents=True, exist_ok=True)

        success = self._s3_client.download_file(
            bucket=self._bucket,
            key=key,
            local_path=local_path,
        )

        if success:
            return local_path
        return None

    def cleanup_local_file(self, local_path: Path) -> None:
        """Remove a staging artifact. Failures are logged, never raised."""
        try:
            local_path.unlink(missing_ok=True)
            logger.debug("Cleaned up %s", local_path)
        except OSError as e:
            logger.warning("Failed to cleanup %s: %s", local_path, e)
