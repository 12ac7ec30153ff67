"""Pydantic models for listed objects, ledger rows and conversion results."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Stage(str, Enum):
    """Step of the per-object conversion pipeline."""

    DEDUP_CHECK = "dedup_check"
    DOWNLOAD = "download"
    DECODE = "decode"
    ENCODE = "encode"
    UPLOAD = "upload"
    RECORD = "record"


class ItemStatus(str, Enum):
    """Terminal state of one object."""

    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ObjectDescriptor(BaseModel):
    """Object listed from the store."""

    model_config = ConfigDict(frozen=True)

    key: str
    size: int = Field(ge=0)
    etag: str | None = None
    last_modified: datetime | None = None


class ListingError(BaseModel):
    """Listing failure for a single entry (or page) of the object stream."""

    key: str | None = None
    message: str


class ConversionRecord(BaseModel):
    """Row of the converted_files table."""

    filename: str
    filepath: str
    size: int
    size_after: int
    converted_time: datetime
    endpoint: str | None = None
    bucket: str | None = None


class ConversionResult(BaseModel):
    """Result of processing a single object."""

    key: str
    status: ItemStatus
    stage: Stage
    size_before: int
    size_after: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == ItemStatus.DONE


class ConversionSummary(BaseModel):
    """Counters for a whole run."""

    listed: int = 0
    not_images: int = 0
    listing_errors: int = 0
    skipped: int = 0
    converted: int = 0
    failed: int = 0
    cancelled: int = 0
    bytes_before: int = 0
    bytes_after: int = 0
