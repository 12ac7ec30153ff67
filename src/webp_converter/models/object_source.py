from abc import ABC, abstractmethod
from typing import Iterator

from webp_converter.models.schemas import ListingError, ObjectDescriptor


class ObjectSource(ABC):
    """Abstract base class for object sources."""

    @abstractmethod
    def list_objects(
        self, bucket: str, prefix: str, recursive: bool = True
    ) -> Iterator[ObjectDescriptor | ListingError]:
        """Lazily enumerate objects under a prefix.

        Args:
            bucket: Bucket to enumerate.
            prefix: Key prefix ("folder") to enumerate under.
            recursive: Descend into nested prefixes. Default is True.

        Returns:
            Iterator of ObjectDescriptor objects, with ListingError entries
            interleaved for entries that could not be listed.
        """
        pass
