"""Shared fixtures for converter tests."""

import io
import threading
import time
from contextlib import contextmanager
from pathlib import Path

import pytest
from PIL import Image
from sqlalchemy import create_engine

from webp_converter.config import Config
from webp_converter.models.schemas import ListingError, ObjectDescriptor
from webp_converter.services.ledger import ConversionLedger
from webp_converter.services.s3_downloader import S3Downloader
from webp_converter.services.s3_uploader import S3Uploader

TEST_BUCKET = "test-bucket"
TEST_FOLDER = "wp-content"
TEST_ENDPOINT = "https://s3.test"


def make_image_bytes(fmt: str, mode: str = "RGB", size: tuple[int, int] = (48, 32)) -> bytes:
    """Render a small gradient image in the given format."""
    image = Image.new("RGB", size)
    image.putdata(
        [(x * 5 % 256, y * 7 % 256, (x + y) * 3 % 256) for y in range(size[1]) for x in range(size[0])]
    )
    if mode != "RGB":
        image = image.convert(mode)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeObjectStore:
    """In-memory stand-in for S3Client that counts concurrent transfers."""

    endpoint_url = TEST_ENDPOINT

    def __init__(self, objects: dict[str, bytes] | None = None, delay: float = 0.0):
        self.objects = dict(objects or {})
        self.delay = delay
        self.listing_errors: list[ListingError] = []
        self.fail_downloads: set[str] = set()
        self.fail_uploads: set[str] = set()
        self.puts: list[str] = []
        self.content_types: dict[str, str | None] = {}
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @contextmanager
    def _track(self):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay)
            yield
        finally:
            with self._lock:
                self.active -= 1

    def list_objects(self, bucket, prefix="", recursive=True):
        yield from self.listing_errors
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield ObjectDescriptor(key=key, size=len(self.objects[key]))

    def download_file(self, bucket, key, local_path):
        with self._track():
            if key in self.fail_downloads:
                return False
            Path(local_path).write_bytes(self.objects[key])
            return True

    def put_object(self, bucket, key, body, content_length, content_type=None):
        with self._track():
            if key in self.fail_uploads:
                return False
            self.objects[key] = bytes(body)
            self.content_types[key] = content_type
            with self._lock:
                self.puts.append(key)
            return True


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def gif_bytes() -> bytes:
    return make_image_bytes("GIF", mode="P")


@pytest.fixture
def staging_dir(tmp_path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def config(staging_dir, tmp_path) -> Config:
    return Config(
        s3_endpoint=TEST_ENDPOINT,
        s3_access_key="access",
        s3_secret_key="secret",
        database_url=f"sqlite:///{tmp_path / 'ledger.db'}",
        s3_bucket=TEST_BUCKET,
        s3_folder=TEST_FOLDER,
        max_workers=2,
        staging_dir=staging_dir,
        log_file=tmp_path / "conversion.log",
    )


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine) -> ConversionLedger:
    ledger = ConversionLedger(
        engine,
        folder=TEST_FOLDER,
        endpoint=TEST_ENDPOINT,
        bucket=TEST_BUCKET,
    )
    ledger.ensure_schema()
    return ledger


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def s3_downloader(store, staging_dir) -> S3Downloader:
    return S3Downloader(store, bucket=TEST_BUCKET, staging_dir=staging_dir)


@pytest.fixture
def s3_uploader(store) -> S3Uploader:
    return S3Uploader(store, bucket=TEST_BUCKET)
