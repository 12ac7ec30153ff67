"""Ledger of converted objects, stored in the converted_files table."""

import logging
import posixpath
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    func,
    or_,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from webp_converter.models.schemas import ConversionRecord, ObjectDescriptor

logger = logging.getLogger(__name__)

metadata = MetaData()

converted_files = Table(
    "converted_files",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("filename", String(1024), nullable=False),
    Column("filepath", String(1024), nullable=False),
    Column("size", BigInteger, nullable=False),
    Column("converted_time", DateTime, nullable=False),
    Column("endpoint", String(255)),
    Column("bucket", String(255)),
    Column("size_after", BigInteger, nullable=False),
)


class ConversionLedger:
    """Records converted objects and answers the dedup check.

    When endpoint and bucket are given, both are written on insert and
    matched on lookup. The engine's connection pool makes the ledger safe
    to share between workers.
    """

    def __init__(
        self,
        engine: Engine,
        folder: str,
        endpoint: str | None = None,
        bucket: str | None = None,
    ):
        self._engine = engine
        self._folder = folder
        self._endpoint = endpoint
        self._bucket = bucket

    @property
    def tracks_source(self) -> bool:
        return self._endpoint is not None and self._bucket is not None

    def filepath_for(self, key: str) -> str:
        """Logical path stored alongside the key: the folder joined with the key.

        A leading slash on the key never replaces the folder, and the joined
        path is cleaned, so "/x.jpg" and "a//./x.jpg" map to the same row as
        their plain forms.
        """
        joined = posixpath.join(self._folder, key.lstrip("/"))
        if not joined:
            return ""
        return posixpath.normpath(joined)

    def ensure_schema(self) -> None:
        """Create the converted_files table if it does not exist."""
        metadata.create_all(self._engine, checkfirst=True)

    def ping(self) -> None:
        """Check the ledger is reachable. Raises SQLAlchemyError if not."""
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def has_been_converted(self, descriptor: ObjectDescriptor) -> bool:
        """Check whether the object already has a conversion record.

        A record matches when its original size or its converted size equals
        the object's current size, so an object that was already replaced by
        its WebP version is also skipped. Database errors propagate.
        """
        query = (
            select(func.count())
            .select_from(converted_files)
            .where(
                converted_files.c.filename == descriptor.key,
                converted_files.c.filepath == self.filepath_for(descriptor.key),
                or_(
                    converted_files.c.size == descriptor.size,
                    converted_files.c.size_after == descriptor.size,
                ),
            )
        )
        if self.tracks_source:
            query = query.where(
                converted_files.c.endpoint == self._endpoint,
                converted_files.c.bucket == self._bucket,
            )

        with self._engine.connect() as conn:
            count = conn.execute(query).scalar_one()
        return count > 0

    def record(
        self,
        descriptor: ObjectDescriptor,
        size_after: int,
        converted_time: datetime | None = None,
    ) -> bool:
        """Insert a conversion record.

        Returns:
            True if the row was written, False otherwise.
        """
        values = {
            "filename": descriptor.key,
            "filepath": self.filepath_for(descriptor.key),
            "size": descriptor.size,
            "converted_time": converted_time or datetime.now(),
            "size_after": size_after,
        }
        if self.tracks_source:
            values["endpoint"] = self._endpoint
            values["bucket"] = self._bucket

        try:
            with self._engine.begin() as conn:
                conn.execute(converted_files.insert().values(**values))
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to insert record for '%s': %s", descriptor.key, e)
            return False

    def get_records(self, filename: str | None = None) -> list[ConversionRecord]:
        """Get conversion records, optionally for a single key."""
        query = select(
            converted_files.c.filename,
            converted_files.c.filepath,
            converted_files.c.size,
            converted_files.c.size_after,
            converted_files.c.converted_time,
            converted_files.c.endpoint,
            converted_files.c.bucket,
        ).order_by(converted_files.c.converted_time)
        if filename is not None:
            query = query.where(converted_files.c.filename == filename)
        if self.tracks_source:
            query = query.where(
                converted_files.c.endpoint == self._endpoint,
                converted_files.c.bucket == self._bucket,
            )

        with self._engine.connect() as conn:
            result = conn.execute(query).fetchall()

        return [
            ConversionRecord(
                filename=row.filename,
                filepath=row.filepath,
                size=row.size,
                size_after=row.size_after,
                converted_time=row.converted_time,
                endpoint=row.endpoint,
                bucket=row.bucket,
            )
            for row in result
        ]
