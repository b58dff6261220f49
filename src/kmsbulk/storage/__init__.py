"""Cloud Storage client and destination naming."""

from kmsbulk.storage.client import (
    BucketInfo,
    GcsClient,
    ObjectInfo,
    StorageAuthError,
    StorageError,
    StorageTransientError,
    is_retryable_storage_error,
)
from kmsbulk.storage.destination import Destination

__all__ = [
    "BucketInfo",
    "Destination",
    "GcsClient",
    "ObjectInfo",
    "StorageAuthError",
    "StorageError",
    "StorageTransientError",
    "is_retryable_storage_error",
]
