"""Services package."""

from qisst.services.storage import (
    Bucket,
    BucketStore,
    ConnectionError,
    GoogleSheetsBucketStore,
    GoogleSheetsClient,
    InMemoryStore,
    JsonFileStore,
    StorageError,
    StoreReadCorrupt,
)

__all__ = [
    # Storage services
    "Bucket",
    "BucketStore",
    "ConnectionError",
    "GoogleSheetsBucketStore",
    "GoogleSheetsClient",
    "InMemoryStore",
    "JsonFileStore",
    "StorageError",
    "StoreReadCorrupt",
]
