"""Models package."""

from webp_converter.models.object_source import ObjectSource
from webp_converter.models.schemas import (
    ConversionRecord,
    ConversionResult,
    ConversionSummary,
    ItemStatus,
    ListingError,
    ObjectDescriptor,
    Stage,
)

__all__ = [
    "ConversionRecord",
    "ConversionResult",
    "ConversionSummary",
    "ItemStatus",
    "ListingError",
    "ObjectDescriptor",
    "ObjectSource",
    "Stage",
]
