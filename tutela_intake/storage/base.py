from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

ByteCallback = Callable[[int], None]
"""Receives the number of bytes transferred since the previous call."""


@dataclass(frozen=True)
class StoredObject:
    """A blob that was written successfully."""

    bucket: str
    key: str
    url: str
    size_bytes: int
    content_type: str


class BaseObjectStore(ABC):
    """Contract for all blob storage adapters."""

    @abstractmethod
    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        on_bytes: ByteCallback | None = None,
    ) -> StoredObject:
        """Write a blob and return where it can be retrieved.

        Args:
            bucket: Logical container (documents or attachments).
            key: Object key inside the bucket.
            data: Full blob content.
            content_type: MIME type stored with the blob.
            on_bytes: Optional callback fed with transferred byte counts.

        Raises:
            StorageUnavailableError: if the backend fails. A failed write
                never leaves a blob that callers should treat as valid.
        """

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        """Return the retrieval URL for a stored key."""

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        """Remove a blob. Deleting a missing key is not an error.

        Raises:
            StorageUnavailableError: if the backend fails.
        """
