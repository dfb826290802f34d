class StorageError(Exception):
    """Base exception for object storage errors."""


class StorageUnavailableError(StorageError):
    """Raised when the storage backend cannot be reached or rejects a write."""
