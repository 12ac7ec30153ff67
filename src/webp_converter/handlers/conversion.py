"""Conversion handler orchestrating listing, dedup, re-encode, upload and record."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable

from webp_converter.config import Config
from webp_converter.models.object_source import ObjectSource
from webp_converter.models.schemas import (
    ConversionResult,
    ConversionSummary,
    ItemStatus,
    ListingError,
    ObjectDescriptor,
    Stage,
)
from webp_converter.services.image_codec import decode_image, encode_webp
from webp_converter.services.ledger import ConversionLedger
from webp_converter.services.s3_downloader import S3Downloader
from webp_converter.services.s3_uploader import S3Uploader

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}

# How often a producer blocked on a full pool re-checks for cancellation.
GATE_POLL_SECONDS = 0.5


class ConversionCancelled(Exception):
    """Raised between stages once the run has been cancelled."""


def is_image_file(key: str) -> bool:
    """Check the key's extension against the convertible image types."""
    name = key.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot < 0:
        return False
    return name[dot:].lower() in IMAGE_EXTENSIONS


def _raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled()


def _failed(
    descriptor: ObjectDescriptor,
    stage: Stage,
    error: str,
    exc_info: bool = False,
) -> ConversionResult:
    logger.error(
        "Error processing object '%s' at stage %s: %s",
        descriptor.key,
        stage.value,
        error,
        exc_info=exc_info,
    )
    return ConversionResult(
        key=descriptor.key,
        status=ItemStatus.FAILED,
        stage=stage,
        size_before=descriptor.size,
        error=error,
    )


def process_object(
    descriptor: ObjectDescriptor,
    s3_downloader: S3Downloader,
    s3_uploader: S3Uploader,
    ledger: ConversionLedger,
    config: Config,
    cancel_event: threading.Event | None = None,
) -> ConversionResult:
    """
    Convert a single image object to WebP in place.

    Steps: dedup check, download, decode, encode, upload to the same key,
    record in the ledger. Any failure is logged once with the failing stage
    and returned as a failed result. The staging file is always removed.

    Args:
        descriptor: Listed object, already known to have an image extension.
        s3_downloader: S3 downloader service.
        s3_uploader: S3 uploader service.
        ledger: Conversion ledger.
        config: Converter configuration (quality and lossless settings).
        cancel_event: Set to stop before the next stage.

    Returns:
        ConversionResult with the terminal status and the last stage reached.
    """
    key = descriptor.key
    stage = Stage.DEDUP_CHECK
    local_path = None

    try:
        if ledger.has_been_converted(descriptor):
            logger.info("File '%s' has already been converted. Skipping.", key)
            return ConversionResult(
                key=key,
                status=ItemStatus.SKIPPED,
                stage=stage,
                size_before=descriptor.size,
            )

        _raise_if_cancelled(cancel_event)
        stage = Stage.DOWNLOAD
        local_path = s3_downloader.local_path_for(key)
        if s3_downloader.download_object(key) is None:
            return _failed(descriptor, stage, "download failed")

        _raise_if_cancelled(cancel_event)
        stage = Stage.DECODE
        image = decode_image(local_path.read_bytes())
        if image is None:
            return _failed(descriptor, stage, "not a decodable JPEG, PNG or GIF image")

        stage = Stage.ENCODE
        webp_data = encode_webp(
            image,
            quality=config.webp_quality,
            lossless=config.webp_lossless,
        )
        if webp_data is None:
            return _failed(descriptor, stage, "WebP encoding failed")

        _raise_if_cancelled(cancel_event)
        stage = Stage.UPLOAD
        if not s3_uploader.upload_webp(key, webp_data):
            return _failed(descriptor, stage, "upload failed")

        # No cancellation check from here on: the object is already replaced.
        stage = Stage.RECORD
        if not ledger.record(descriptor, size_after=len(webp_data), converted_time=datetime.now()):
            return _failed(descriptor, stage, "converted object uploaded but not recorded")

        logger.info(
            "Successfully converted and uploaded %s to WebP format (%d -> %d bytes)",
            key,
            descriptor.size,
            len(webp_data),
        )
        return ConversionResult(
            key=key,
            status=ItemStatus.DONE,
            stage=stage,
            size_before=descriptor.size,
            size_after=len(webp_data),
        )

    except ConversionCancelled:
        logger.warning("Cancelled '%s' before stage %s", key, stage.value)
        return ConversionResult(
            key=key,
            status=ItemStatus.CANCELLED,
            stage=stage,
            size_before=descriptor.size,
        )

    except Exception as e:
        return _failed(descriptor, stage, str(e), exc_info=True)

    finally:
        if local_path is not None:
            s3_downloader.cleanup_local_file(local_path)


def _acquire_slot(gate: threading.BoundedSemaphore, cancel_event: threading.Event) -> bool:
    """Block until a worker slot frees up. Returns False if cancelled meanwhile."""
    while not gate.acquire(timeout=GATE_POLL_SECONDS):
        if cancel_event.is_set():
            return False
    return True


def run_conversion(
    object_source: ObjectSource,
    process: Callable[[ObjectDescriptor], ConversionResult],
    bucket: str,
    prefix: str,
    max_workers: int,
    cancel_event: threading.Event | None = None,
) -> ConversionSummary:
    """
    Convert every image under a prefix with a bounded pool of workers.

    The listing is consumed by this thread only. At most max_workers objects
    are in flight; listing pauses while the pool is full. Returns once every
    submitted object has finished.

    Args:
        object_source: Source enumerating the bucket.
        process: Per-object handler, usually a bound process_object.
        bucket: Bucket to convert.
        prefix: Prefix ("folder") to convert under.
        max_workers: Maximum number of objects processed concurrently.
        cancel_event: Set to stop listing and abort in-flight objects.

    Returns:
        ConversionSummary with the run's counters.
    """
    if cancel_event is None:
        cancel_event = threading.Event()

    summary = ConversionSummary()
    lock = threading.Lock()
    gate = threading.BoundedSemaphore(max_workers)

    def on_done(future: Future) -> None:
        gate.release()
        try:
            result = future.result()
        except Exception as e:
            logger.error("Worker raised unexpectedly: %s", e)
            with lock:
                summary.failed += 1
            return

        with lock:
            if result.status == ItemStatus.DONE:
                summary.converted += 1
                summary.bytes_before += result.size_before
                summary.bytes_after += result.size_after or 0
            elif result.status == ItemStatus.SKIPPED:
                summary.skipped += 1
            elif result.status == ItemStatus.CANCELLED:
                summary.cancelled += 1
            else:
                summary.failed += 1

    logger.info("Listing s3://%s/%s with %d workers", bucket, prefix, max_workers)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="convert") as executor:
        try:
            for item in object_source.list_objects(bucket, prefix, recursive=True):
                if cancel_event.is_set():
                    logger.warning("Cancellation requested, stopping listing")
                    break

                if isinstance(item, ListingError):
                    logger.error("Error listing objects: %s", item.message)
                    with lock:
                        summary.listing_errors += 1
                    continue

                with lock:
                    summary.listed += 1

                if not is_image_file(item.key):
                    logger.debug("Skipping non-image object: %s", item.key)
                    with lock:
                        summary.not_images += 1
                    continue

                if not _acquire_slot(gate, cancel_event):
                    logger.warning("Cancellation requested, stopping listing")
                    break

                executor.submit(process, item).add_done_callback(on_done)

        except KeyboardInterrupt:
            logger.warning("Interrupted, waiting for in-flight objects to stop")
            cancel_event.set()
            raise

    logger.info("=" * 60)
    logger.info(
        "Completed: %d converted, %d skipped, %d failed, %d not images, "
        "%d listing errors, %d cancelled",
        summary.converted,
        summary.skipped,
        summary.failed,
        summary.not_images,
        summary.listing_errors,
        summary.cancelled,
    )
    logger.info("Bytes: %d before, %d after", summary.bytes_before, summary.bytes_after)
    logger.info("=" * 60)

    return summary
