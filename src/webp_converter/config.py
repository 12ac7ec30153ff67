"""Configuration management for the WebP converter."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

REQUIRED_KEYS = (
    "S3_ENDPOINT",
    "S3_ACCESS_KEY",
    "S3_SECRET_KEY",
    "DATABASE_URL",
    "S3_BUCKET",
    "S3_FOLDER",
)


def _get_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Converter configuration loaded once at startup.

    Environment variables:
        S3_ENDPOINT: Object store endpoint (host or URL).
        S3_ACCESS_KEY / S3_SECRET_KEY: Static credentials.
        DATABASE_URL: SQLAlchemy URL of the ledger (MYSQL_URL is accepted too).
        S3_BUCKET: Bucket to scan.
        S3_FOLDER: Prefix ("folder") to scan inside the bucket.
    """

    s3_endpoint: str = ""
    s3_access_key: str = ""
    s3_secret_key: str = ""
    database_url: str = ""
    s3_bucket: str = ""
    s3_folder: str = ""

    s3_region: str = "us-east-1"
    s3_secure: bool = True
    s3_timeout: int = 60

    max_workers: int = 4
    webp_quality: int = 65
    webp_lossless: bool = False

    staging_dir: Path = Path("downloaded")
    log_file: Path = Path("conversion.log")
    track_source: bool = True

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """Build a Config from a dotenv file and the process environment."""
        load_dotenv(env_file or ".env")

        return cls(
            s3_endpoint=os.getenv("S3_ENDPOINT", ""),
            s3_access_key=os.getenv("S3_ACCESS_KEY", ""),
            s3_secret_key=os.getenv("S3_SECRET_KEY", ""),
            database_url=os.getenv("DATABASE_URL") or os.getenv("MYSQL_URL", ""),
            s3_bucket=os.getenv("S3_BUCKET", ""),
            s3_folder=os.getenv("S3_FOLDER", ""),
            s3_region=os.getenv("S3_REGION", "us-east-1"),
            s3_secure=_get_bool("S3_SECURE", True),
            s3_timeout=int(os.getenv("S3_TIMEOUT", "60")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            webp_quality=int(os.getenv("WEBP_QUALITY", "65")),
            webp_lossless=_get_bool("WEBP_LOSSLESS", False),
            staging_dir=Path(os.getenv("STAGING_DIR", "downloaded")),
            log_file=Path(os.getenv("LOG_FILE", "conversion.log")),
            track_source=_get_bool("LEDGER_TRACK_SOURCE", True),
        )

    @property
    def endpoint_url(self) -> str:
        """Endpoint as a full URL; bare hosts get a scheme from s3_secure."""
        if "://" in self.s3_endpoint:
            return self.s3_endpoint
        scheme = "https" if self.s3_secure else "http"
        return f"{scheme}://{self.s3_endpoint}"

    def validate(self) -> None:
        """Validate required configuration."""
        values = {
            "S3_ENDPOINT": self.s3_endpoint,
            "S3_ACCESS_KEY": self.s3_access_key,
            "S3_SECRET_KEY": self.s3_secret_key,
            "DATABASE_URL": self.database_url,
            "S3_BUCKET": self.s3_bucket,
            "S3_FOLDER": self.s3_folder,
        }
        missing = [key for key in REQUIRED_KEYS if not values[key]]
        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        if not 0 <= self.webp_quality <= 100:
            raise ValueError("WEBP_QUALITY must be between 0 and 100")

        if self.max_workers < 1:
            raise ValueError("MAX_WORKERS must be at least 1")
